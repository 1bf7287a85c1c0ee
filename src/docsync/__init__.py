"""docsync — crawl a documentation site into a local, searchable knowledge base."""

__version__ = "0.1.0"
