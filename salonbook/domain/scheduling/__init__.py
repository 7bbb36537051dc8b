"""
Scheduling Domain

This domain handles appointment booking, availability and calendar sync for
the salons.

Structure:
```
salonbook/domain/scheduling/
├── __init__.py
├── value_objects.py        # Duration, Money, Phone, DateRange
├── entities.py             # Immutable salon, professional, appointment models
├── errors.py               # Domain error taxonomy (not found, conflict, ...)
├── ports.py                # Repository and external provider interfaces
├── schemas.py              # Request and response DTOs
├── repository.py           # SQLAlchemy implementations of the ports
├── time_calculator.py      # Slot generation from working hours
├── availability_service.py # Timeline merging store, overrides and providers
├── integration_service.py  # Google Calendar and Trinks sync after commit
├── use_cases.py            # Create, update, cancel, upcoming, availability
└── router.py               # Scheduling endpoints
```

RULES:
1. The database is the source of truth; provider sync never fails a booking
2. Instants are stored in UTC and rendered in the salon timezone
3. Two active appointments of one professional never overlap
"""
