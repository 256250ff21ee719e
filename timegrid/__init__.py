"""Timetable extraction and management service.

Teachers upload timetable documents (images, PDFs, Word files); a hybrid
OCR + LLM pipeline turns them into structured weekly time blocks that are
stored and served through a REST API.
"""
