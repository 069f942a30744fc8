"""schoolhub: account bootstrap, school provisioning and realtime direct messaging."""
