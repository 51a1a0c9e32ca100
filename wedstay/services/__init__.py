"""
services/ — marketplace business logic.

Every public entry point takes a Session and the caller's Principal
explicitly and returns a ServiceResult.
"""
