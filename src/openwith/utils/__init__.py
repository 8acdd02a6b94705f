"""Utility helpers for OpenWith."""
