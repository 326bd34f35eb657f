"""Implicit shape model voting: maxima search, filtering and global feature verification."""
