# app/config.py
"""
Environment-driven settings for the questionnaire backend.
Values are read once at import; services pick them up when the app is built.
"""
import os

# Storage
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")  # 'local' or 's3'
DATA_DIR = os.getenv("DATA_DIR", "data")
RESPONSES_PATH = os.getenv("RESPONSES_PATH", "responses.json")
S3_BUCKET = os.getenv("S3_BUCKET", "survey-responses")
AWS_REGION = os.getenv("AWS_REGION", "ap-southeast-1")

# Survey schema: registry name or path to a JSON schema file
SURVEY_SCHEMA = os.getenv("SURVEY_SCHEMA", "visitor-satisfaction")

# HTTP
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

# Dashboard credentials (stats + download). Unset means every request is denied.
STATS_USERNAME = os.getenv("STATS_USERNAME")
STATS_PASSWORD = os.getenv("STATS_PASSWORD")

# Client origin capture. Forwarded headers are only meaningful behind a trusted proxy.
RECORD_CLIENT_IP = os.getenv("RECORD_CLIENT_IP", "true").lower() == "true"
TRUST_PROXY_HEADERS = os.getenv("TRUST_PROXY_HEADERS", "true").lower() == "true"

# Reporting
REPORT_TIMEZONE = os.getenv("REPORT_TIMEZONE", "UTC")
RECENT_SUBMISSIONS_LIMIT = int(os.getenv("RECENT_SUBMISSIONS_LIMIT", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
