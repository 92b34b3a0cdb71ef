"""
kittens - Minimal photo-sharing web application

Users upload an image with a kitten name and browse a gallery of recent uploads:
- Image storage in Google Cloud Storage
- Upload metadata in DuckDB
- Display-sized serving images behind signed URLs
- Time-based retention sweep
"""

__version__ = "0.1.0"
__author__ = "kittens"
__description__ = "Minimal photo-sharing web application with Flask"
