"""
Autoblogger Ingestion Module
============================

Source page retrieval, main-content extraction and HTML sanitization.
"""
