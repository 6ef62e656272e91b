"""TableVault - backup and restore for a chat bot's relational store."""

__version__ = "1.0.0"
__author__ = "TableVault Team"
