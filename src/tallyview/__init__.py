"""Agregación y presentación de resultados electorales.

English:
    Election results aggregation and presentation.
"""

__version__ = "0.3.0"
