"""
                Food Ordering Backend

Restaurant storefront API with load-aware delivery-time estimation
for newly placed orders.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
