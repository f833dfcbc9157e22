"""
tabtorrent: a tabbed front-end for a local torrent download engine.
"""

__version__ = "0.3.0"
