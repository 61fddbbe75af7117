"""
Subtitle Chapters - video captions to clean transcripts and chapter outlines.

A pipeline for:
- Resolving video ids from the many URL shapes a video can be shared with
- Parsing WebVTT/SRT caption documents into cues
- Normalizing cues into a timestamped transcript
- Generating an ordered chapter list with OpenAI, stored once per transcript
"""

__version__ = "0.1.0"
