# src/api/__init__.py
# =====================
# API Layer — VoiceBridge
#
#   - routes.py: FastAPI app exposing translate-audio, check-job, tts and
#                languages endpoints
