"""
Funnel Finder Package

A Python tool for discovering advertising landing pages on a website and
reconstructing the conversion funnels that start from them.
"""

__version__ = "1.0.0"
__author__ = "Funnel Finder Project"
__description__ = "Ad landing page and conversion funnel discovery tool"
