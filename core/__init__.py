"""Core application of the PetCareX backend.

Models, services, serializers and views for branches, staff, customers,
pets, appointments, clinical records, inventory, promotions and invoices.
"""
