"""
Dynamic Renderer: pre-renders JavaScript-heavy pages for crawlers and serves
them from an edge gateway while human traffic goes straight to the origin.
"""

__version__ = "0.1.0"
