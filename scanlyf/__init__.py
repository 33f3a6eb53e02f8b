"""
Scanlyf food analysis pipeline.

Identifies food from text, images or barcodes, reconciles ambiguous
detections with the user and scores ingredients for personalized risk.

Structure:
- domain/: Business logic and domain models
- application/: Services orchestrating the domain
- infrastructure/: External concerns (APIs, cache, resilience)
"""

__version__ = "0.1.0"
