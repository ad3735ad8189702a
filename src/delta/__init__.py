"""Delta — changelogs from GitHub commit history.

Connects GitHub repositories, turns their latest commits into a readable
Markdown changelog (AI-written, with a deterministic fallback) and
publishes it under a public slug.
"""

__version__ = "0.1.0"
