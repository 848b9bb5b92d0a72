"""auth/ -- Credential and session-token core for Chirpy.

Layer rule: auth/ imports only stdlib + third-party libraries, plus
core.config from auth/dependencies.py. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
