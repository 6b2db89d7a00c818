"""
County-level livestock census maps.

Loads Census of Agriculture inventory snapshots keyed by county FIPS code,
reconciles them against the county boundary universe, and renders choropleth
maps of the change between the first and last census year.
"""

__version__ = '0.1.0'
