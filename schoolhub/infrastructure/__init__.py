"""Infrastructure adapters: Firestore store, Redis realtime channel, identity."""
