"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from depot.api.v1.endpoints import auth, branches, health, orders, products, users

api_router = APIRouter()

# Login, registration, profile
api_router.include_router(auth.router)

# Catalogue and supply orders
api_router.include_router(products.router)
api_router.include_router(orders.router)

# Administration
api_router.include_router(users.router)
api_router.include_router(branches.router)

api_router.include_router(health.router)
