"""Fixed values shared by the ICS builder and the Google Calendar push."""

# Product identifier written into every generated calendar.
PRODUCT_ID = "-//mailcal//Email to Calendar//JA"

# Right-hand side of generated UIDs.
UID_DOMAIN = "mailcal"

# Placed between the extracted description and the original email body.
DESCRIPTION_SEPARATOR = "\n\n--- Original Email ---\n"

# The one zone every event is expressed in (IANA name).
DEFAULT_TIMEZONE = "Asia/Tokyo"

ICS_CONTENT_TYPE = "text/calendar; charset=utf-8"
ICS_FILENAME = "event.ics"
