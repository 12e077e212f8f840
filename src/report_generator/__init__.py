"""
This package contains the LLM-based business report generator.

Its purpose is to turn a user's report configuration into a search-grounded
request for Google Gemini, validate the structured JSON answer into a typed
report, and render that report as a self-contained HTML document that can be
served, downloaded, or printed.
"""
