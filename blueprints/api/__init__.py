"""
Booking API routes package.
Split into smaller modules by entity for maintainability.
"""

from flask import Blueprint

# Create the API blueprint
api_bp = Blueprint('api', __name__)

# Import and register routes from submodules
from blueprints.api import availability
from blueprints.api import pricing
from blueprints.api import bookings
from blueprints.api import exports
from blueprints.api import blocks

# Register all route functions on the blueprint
availability.register_routes(api_bp)
pricing.register_routes(api_bp)
bookings.register_routes(api_bp)
exports.register_routes(api_bp)
blocks.register_routes(api_bp)
