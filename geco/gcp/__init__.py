"""
geco/gcp - Google Cloud API access
"""

from .client import Page, ResourceClient, flatten_scoped_items

__all__: list[str] = ["Page", "ResourceClient", "flatten_scoped_items"]
