"""
geco/data - Inventory data layer
"""
