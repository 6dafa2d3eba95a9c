"""
DMS Submission

Accepts document submissions, archives them to object storage, tracks each
submission item through its delivery lifecycle and notifies SDES.
"""

__version__ = "0.1.0"
