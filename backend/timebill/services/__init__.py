"""
Billing engine services.

Routes call services; services own the rules (rounding, rate resolution,
timer exclusivity, invoice assembly) and reach storage only through DAOs.
"""
