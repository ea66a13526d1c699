"""
Shared helpers: console and logging setup, node source rendering.
"""
