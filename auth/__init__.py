"""auth/ -- Token lifecycle and account storage for VaultSync.

Layer rule: auth/ imports only stdlib + third-party libraries (fastapi only in
dependencies.py). It does NOT import from api/ or core/. api/ wires the
pieces together in its lifespan; auth/ never reads configuration itself.
"""
