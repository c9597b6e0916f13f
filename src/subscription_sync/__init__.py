"""
GitHub Subscription Sync

Keeps a user's GitHub notification subscriptions for every repository of an
organization in line with a locally editable JSON manifest.
"""

__version__ = "0.1.0"
__author__ = "Subscription Sync Team"
__description__ = "Export, edit and push GitHub watch settings for an organization"
