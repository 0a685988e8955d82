"""
Course Chat Configuration
Database, relay and payment simulation settings
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "coursechat_db")

# "mongo" or "memory" (local runs without a database)
CHAT_STORE_BACKEND = os.getenv("CHAT_STORE_BACKEND", "mongo").lower()

# Chat relay
CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", "50"))
CHAT_MAX_HISTORY_LIMIT = int(os.getenv("CHAT_MAX_HISTORY_LIMIT", "200"))
CHAT_SEND_TIMEOUT_SECONDS = float(os.getenv("CHAT_SEND_TIMEOUT_SECONDS", "5"))
CHAT_REJECTION_ACKS = os.getenv("CHAT_REJECTION_ACKS", "false").lower() in ("1", "true", "yes")
CHAT_DEFAULT_ROOM = "global"

# Payment simulation
PAYMENT_PROCESSING_DELAY_SECONDS = float(os.getenv("PAYMENT_PROCESSING_DELAY_SECONDS", "2.0"))

# Server
CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
VERSION = os.getenv("VERSION")
