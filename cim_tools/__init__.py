"""
CIM Tools - catalog image management.

Consolidates duplicate product images onto master images, reclaims the
images nothing references anymore and audits the catalog afterwards.
"""

__version__ = "1.1.0"
