"""PGEN Toolkit - windowed reading of PGEN genotype filesets."""

__version__ = "0.1.0"
