"""iCalendar (RFC 5545) generation: escaping, folding, timestamps, documents."""
