# asset_importer/__init__.py
"""Asset Importer - bulk product asset import pipeline."""

__version__ = "1.0.0"
__title__ = "Asset Importer API"
__description__ = "Pair, upload, caption and export product assets in bulk"
