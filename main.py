"""
Entry point for the SEO Blog Checker.
Delegates to seo_blog_checker.main.
"""
import sys
import os

# Add the current directory to python path
sys.path.append(os.getcwd())

from seo_blog_checker.main import main

if __name__ == "__main__":
    sys.exit(main())
