"""
Services module for business logic separation.

This module contains the components a worker is assembled from, keeping
business logic separate from API endpoints and database models:
- CodeGenerator: random fixed-length base62 codes
- ShortCodeAllocator: unique code allocation backed by the store
- UrlCache: bounded FIFO accelerator cache
- ClickAccumulator: fire-and-forget click counting
- URLShorteningService: the request-level flows built on the above
"""
