"""Domain layer — field metadata, conditions, lifecycle, repeater math.

This layer depends only on stdlib, pydantic and NetworkX.
It must never import from services, infrastructure, commands, or config.
"""
