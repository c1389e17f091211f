# Ontology Models
from hostel.models.ontology import (
    Room, Bed, Guest, Booking, Payment, Notification, IdSequence, BedNight
)

__all__ = [
    'Room', 'Bed', 'Guest', 'Booking', 'Payment', 'Notification',
    'IdSequence', 'BedNight'
]
