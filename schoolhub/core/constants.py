"""Core constants: store collection/table names, realtime events and routes.

Single source of truth for names shared by the store adapters, the
realtime channel and the onboarding redirects.
"""

# Realtime: table and event names carried on every insert event
TABLE_MESSAGES = "messages"
EVENT_INSERT = "INSERT"

# Delimiter for composite keys (conversation keys, realtime channel names)
KEY_SEP = ":"

# Routes the browser is sent to after onboarding decisions
ROUTE_LOGIN = "/login"
ROUTE_ONBOARDING = "/onboarding"
ROUTE_DASHBOARD = "/dashboard"
