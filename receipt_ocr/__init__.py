"""Receipt OCR field extraction.

Turns an uploaded receipt photo into suggested form values: OpenCV
preprocessing, Tesseract recognition, rule-based extraction of amount,
date, vendor and invoice number, and optional Gemini-assisted extraction.
"""

__version__ = "1.0.0"
