"""Service layer — the Form lifecycle and services returning ServiceResult.

Services may import from domain, infrastructure and plugins.
They must never import from commands or output.
"""
