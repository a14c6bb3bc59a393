"""reservepay - slot reservations with payment confirmation"""

__version__ = "1.0.0"
