"""Menu nutrition engine: cached dish calories, micronutrient profiles and activation guard."""

__version__ = "1.0.0"
