"""
schemas/ — Pydantic input structs and the service result envelope

Every service entry point validates its payload against one of these
models before touching the store.
"""
