"""Standard record and attribute types used to seed reference stores."""

from __future__ import annotations

from artifact_ingestion.domain.types import ValueKind

# name -> description
STANDARD_RECORD_TYPES: tuple[tuple[str, str], ...] = (
    ("TSK_WEB_BOOKMARK", "Web Bookmarks"),
    ("TSK_WEB_COOKIE", "Web Cookies"),
    ("TSK_WEB_HISTORY", "Web History"),
    ("TSK_WEB_DOWNLOAD", "Web Downloads"),
    ("TSK_WEB_SEARCH_QUERY", "Web Search"),
    ("TSK_RECENT_OBJECT", "Recent Documents"),
    ("TSK_INSTALLED_PROG", "Installed Programs"),
    ("TSK_DEVICE_ATTACHED", "USB Device Attached"),
    ("TSK_CONTACT", "Contacts"),
    ("TSK_MESSAGE", "Messages"),
    ("TSK_CALLLOG", "Call Logs"),
    ("TSK_CALENDAR_ENTRY", "Calendar Entries"),
    ("TSK_SPEED_DIAL_ENTRY", "Speed Dial Entries"),
    ("TSK_BLUETOOTH_PAIRING", "Bluetooth Pairings"),
    ("TSK_GPS_TRACKPOINT", "GPS Trackpoints"),
    ("TSK_SERVICE_ACCOUNT", "Accounts"),
    ("TSK_PROG_RUN", "Run Programs"),
    ("TSK_WIFI_NETWORK", "Wireless Networks"),
    ("TSK_USER_CONTENT_SUSPECTED", "User Content Suspected"),
)

# name -> (value kind, display name)
STANDARD_ATTRIBUTE_TYPES: tuple[tuple[str, ValueKind, str], ...] = (
    ("TSK_URL", ValueKind.STRING, "URL"),
    ("TSK_DATETIME", ValueKind.DATETIME, "Date/Time"),
    ("TSK_NAME", ValueKind.STRING, "Name"),
    ("TSK_PROG_NAME", ValueKind.STRING, "Program Name"),
    ("TSK_VALUE", ValueKind.STRING, "Value"),
    ("TSK_FLAG", ValueKind.STRING, "Flag"),
    ("TSK_PATH", ValueKind.STRING, "Path"),
    ("TSK_DOMAIN", ValueKind.STRING, "Domain"),
    ("TSK_USER_NAME", ValueKind.STRING, "User Name"),
    ("TSK_USER_ID", ValueKind.STRING, "User ID"),
    ("TSK_DATETIME_ACCESSED", ValueKind.DATETIME, "Date Accessed"),
    ("TSK_DATETIME_CREATED", ValueKind.DATETIME, "Date Created"),
    ("TSK_DATETIME_MODIFIED", ValueKind.DATETIME, "Date Modified"),
    ("TSK_DATETIME_START", ValueKind.DATETIME, "Start Date/Time"),
    ("TSK_DATETIME_END", ValueKind.DATETIME, "End Date/Time"),
    ("TSK_DEVICE_ID", ValueKind.STRING, "Device ID"),
    ("TSK_DEVICE_MAKE", ValueKind.STRING, "Device Make"),
    ("TSK_DEVICE_MODEL", ValueKind.STRING, "Device Model"),
    ("TSK_MAC_ADDRESS", ValueKind.STRING, "MAC Address"),
    ("TSK_SSID", ValueKind.STRING, "SSID"),
    ("TSK_IP_ADDRESS", ValueKind.STRING, "IP Address"),
    ("TSK_PHONE_NUMBER", ValueKind.STRING, "Phone Number"),
    ("TSK_PHONE_NUMBER_FROM", ValueKind.STRING, "From Phone Number"),
    ("TSK_PHONE_NUMBER_TO", ValueKind.STRING, "To Phone Number"),
    ("TSK_EMAIL", ValueKind.STRING, "Email"),
    ("TSK_TEXT", ValueKind.STRING, "Text"),
    ("TSK_SUBJECT", ValueKind.STRING, "Subject"),
    ("TSK_DIRECTION", ValueKind.STRING, "Direction"),
    ("TSK_MESSAGE_TYPE", ValueKind.STRING, "Message Type"),
    ("TSK_READ_STATUS", ValueKind.INTEGER, "Read"),
    ("TSK_COUNT", ValueKind.INTEGER, "Count"),
    ("TSK_GEO_LATITUDE", ValueKind.DOUBLE, "Latitude"),
    ("TSK_GEO_LONGITUDE", ValueKind.DOUBLE, "Longitude"),
    ("TSK_GEO_ALTITUDE", ValueKind.DOUBLE, "Altitude"),
    ("TSK_BYTES_SENT", ValueKind.LONG, "Bytes Sent"),
    ("TSK_BYTES_RECEIVED", ValueKind.LONG, "Bytes Received"),
    ("TSK_SIZE", ValueKind.LONG, "Size"),
    ("TSK_HASH_MD5", ValueKind.STRING, "MD5 Hash"),
    ("TSK_ENTROPY", ValueKind.DOUBLE, "Entropy"),
    ("TSK_CATEGORY", ValueKind.STRING, "Category"),
    ("TSK_DESCRIPTION", ValueKind.STRING, "Description"),
    ("TSK_TITLE", ValueKind.STRING, "Title"),
    ("TSK_COMMENT", ValueKind.STRING, "Comment"),
    ("TSK_BYTE_FLAG", ValueKind.BYTE, "Byte Flag"),
    ("TSK_JSON_DATA", ValueKind.JSON, "JSON Data"),
)
