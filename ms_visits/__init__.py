"""
MS-VISITS-PY - Agendamiento de visitas a propiedades
"""
__version__ = "1.0.0"
