"""
Adapters module for ChainRepo.
"""
