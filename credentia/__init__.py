"""
Credentia: credential template layout, rendering and issuance service.
"""

__version__ = "1.0.0"
