"""
typebrowse - browse a directory over HTTP, grouped by file type with thumbnails.
"""

__version__ = "0.1.0"
