# Middleware package init
"""
VectorDB CRUD — Middleware Package
===================================

Middleware Chain (execution order):
    Request → [Request ID] → [Logging] → [Rate Limit] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every response, 429s and unexpected 500s included,
       carries X-Request-ID and the matching `request_id` in error bodies
    2. Logging: access line with status and duration, rejected requests included
    3. Rate Limit: reject abusive clients before any collaborator call
"""
