"""
                        Services Module

Contains the business logic behind the API routes.

Services:
    - estimation: Load- and peak-aware delivery time estimates
    - orders: Order placement and admin status changes
    - restaurants: Storefront listing, admin updates, demo seeding
    - excel_manager: Thread-safe Excel order ledger
"""
