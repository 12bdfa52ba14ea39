"""
SpecGen - speculative fiction and image generation service.
"""

__version__ = "2.0.0"
