"""Application and Infrastructure Layers.

- infrastructure: DEM tile I/O adapters returning domain Value Objects
- application: services that orchestrate domain operations for callers
"""
