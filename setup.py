"""
ChainRepo: A blockchain repository layer

ChainRepo persists blocks, block headers, transaction receipts and chain metadata in key-value stores
and keeps them consistent with a secondary index, so that the chain head, the children of a header
and the receipts of a block can be looked up.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh.readlines() if line.strip() and not line.startswith("#")]

# Get version from the package
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '.'))
from chainrepo.units.version import get_version
from chainrepo import VERSION

setup(
    name="ChainRepo",
    version=get_version(VERSION),
    description="A blockchain repository layer for blocks, headers and transaction receipts",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['chainrepo', 'chainrepo.*'], exclude=['tests*']),
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 2 - Pre-Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="blockchain, repository, storage, index",
)
