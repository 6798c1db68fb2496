"""Feed processing: fingerprints and CSV sanitizing"""

from feedsync.processing.fingerprint import fingerprint_file, local_size
from feedsync.processing.sanitizer import CsvSanitizer, SanitizeResult, read_rows

__all__ = ["CsvSanitizer", "SanitizeResult", "fingerprint_file", "local_size", "read_rows"]
