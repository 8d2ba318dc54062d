"""
Services for relationship sync: token access (token_service), sync
orchestration (sync_service) and the follow-up dashboard (dashboard_service).
"""
