"""Readers, validation and settings for PGEN filesets."""
