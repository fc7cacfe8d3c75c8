"""Exportación tabular de resultados.

English: Tabular results export.
"""
