"""
Archive Heart Timeline - turns a music listening export into a shareable timeline.

This package parses a streaming-history CSV, classifies every play into an
emotion, aggregates the plays into timeline statistics and packs the classified
track list into a compressed link that can be opened without a server account.
"""

__version__ = "0.1.0"
