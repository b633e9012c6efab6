"""
Variants module - declarative image transformation pipelines.

An ImageVariantCollection declares named pipelines of operations; the
ImageProcessor applies them to a FileRecord and writes the results back to
the record's storage backend.
"""
