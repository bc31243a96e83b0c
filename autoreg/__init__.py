"""Proxy backend auto-registration.

Keeps a proxy's routing table in sync with the game-server containers that
Docker runs, and routes new sessions to a default backend:
 - discovery from Swarm services or plain compose containers
 - health filtering and stable per-replica backend names
 - incremental register/unregister against the routing table
 - default backend selection and kick-reason forwarding for sessions
"""
