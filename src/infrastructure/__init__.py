"""Infrastructure Layer.

File I/O adapters that implement domain ports and return domain Value Objects.
"""
