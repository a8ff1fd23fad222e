"""progressive_dx_server — FastAPI REST API for the prediction engine.

Exposes ``SessionManager`` as an HTTP API: session start, response
submission, state and history, final report, and reference data.
"""
