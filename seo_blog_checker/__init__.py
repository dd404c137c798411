"""
SEO Blog Checker: evaluates WordPress posts (or any web page) with Gemini and
writes Markdown reports.
"""

__version__ = "1.0.0"
