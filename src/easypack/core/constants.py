"""
easypack format constants shared by every revision.
"""
import struct

# Every revision starts with the same preamble so the version tag can always
# be read before any revision-specific parsing happens.
MAGIC = b"SMPL"

# Preamble: magic(4) + major(1) + minor(1) = 6 bytes
PREAMBLE_STRUCT = struct.Struct("<4sBB")
PREAMBLE_SIZE = PREAMBLE_STRUCT.size  # 6 bytes

# I/O settings
DEFAULT_COPY_CHUNK_SIZE = 1024 * 1024  # 1 MB - chunk size when copying streams into a container

# Batch read settings
DEFAULT_MAX_GAP_SIZE = 1024 * 1024  # 1 MB - merge adjacent entries if gap < 1MB
