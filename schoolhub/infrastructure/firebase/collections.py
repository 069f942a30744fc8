"""Firestore collection names (schema-in-code).

Firestore has no DDL or migrations. Collections are created automatically
when you first write a document. Use these constants so collection names
stay consistent and act as the single source of truth for the "schema".
"""

# profiles/{identity_id}: full_name, role, school_id, phone, avatar_url
COLLECTION_PROFILES = "profiles"
# schools/{cuid}: name, region, address, join_code, created_at
COLLECTION_SCHOOLS = "schools"
# school_codes/{join_code}: school_id, created_at (document ID enforces uniqueness)
COLLECTION_SCHOOL_CODES = "school_codes"
# messages/{auto id}: school_id, sender_id, receiver_id, body, conversation_key, created_at
COLLECTION_MESSAGES = "messages"
