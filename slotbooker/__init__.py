"""
slotbooker - conflict-free appointment booking against practitioner working hours.
"""

__version__ = "0.1.0"
