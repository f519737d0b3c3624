"""
FlashPress News

A news aggregation and AI-assistance service: stored headlines, AI
summarization, fake-news scoring, a chat assistant, and bookmarks and
study resources for TNPSC exam preparation.
"""

__version__ = "1.0.0"
__author__ = "FlashPress Team"
__description__ = "News aggregation and AI-assistance API"
