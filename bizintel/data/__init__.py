"""
Synthetic Data Module
"""
from .generators import DataGenerator, GeneratedDataset

__all__ = ["DataGenerator", "GeneratedDataset"]
