"""
FileRecord module - storage-agnostic file records.

Provides the FileRecord value object, factories that create records from
disk, bytes or existing storage objects, and the path/URL builders used to
address originals and their image variants.
"""
