"""
FitSnap: daily front/back progress photo diary API.
"""
__version__ = "1.0.0"
