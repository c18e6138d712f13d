"""
socialpub: scheduled publishing of social posts to Instagram and Facebook.
"""

__version__ = "0.1.0"
