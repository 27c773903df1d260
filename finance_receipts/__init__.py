"""Receipt pipeline for a personal finance tracker.

Compresses receipt photos, recognizes their text with Tesseract OCR,
extracts amount, date and merchant with ordered regex rules, and uploads
the compressed image to object storage behind long-lived signed URLs.
"""
