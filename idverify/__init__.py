"""Identity document verification for loan applications.

Extracts identity fields from scanned government IDs with Tesseract OCR,
matches them against the application of record, and decides whether the
document can be auto-approved or needs manual review.
"""

__version__ = "1.0.0"
