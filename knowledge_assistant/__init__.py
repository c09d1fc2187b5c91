"""Knowledge Assistant package.

A small personal assistant that remembers taught key/value facts and
answers free-form questions by fuzzy-matching them against what it knows.
Modules are intentionally lightweight and do not touch the data file or
audio devices on import.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
