"""Instruction file injection."""
