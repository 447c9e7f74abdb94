"""Internal constants shared across the library."""

#: Mean Earth radius used by every distance computation, in metres.
EARTH_RADIUS_M = 6_371_000.0

#: Kilometres spanned by one degree of latitude.
KM_PER_DEGREE_LAT = 111.32

DEFAULT_DEVICE_URL = "192.168.1.100"
DEVICE_GPS_PATH = "/gps"
USER_AGENT = "pygeoguard"

DEFAULT_BUFFER_RADIUS_M = 100.0
DEFAULT_ALERT_DELAY_MS = 5000
DEFAULT_SOURCE_TIMEOUT_MS = 3000
DEFAULT_POLL_INTERVAL_MS = 2000
DEFAULT_TICK_INTERVAL_MS = 500

DEFAULT_SIM_STEP = 0.02
DEFAULT_SIM_SCALE_FACTOR = 100.0
DEFAULT_INTRUSION_STEP_SECONDS = 0.05
DEFAULT_STATIC_JITTER_DEG = 0.00001
DEFAULT_INTRUSION_DIRECTION_DEG = 45.0
DEFAULT_INTRUSION_SPEED_KMH = 35.0
DEFAULT_ROUTE_SPEED_BAND_KMH: tuple[float, float] = (40.0, 55.0)

MAX_SIM_SPEED_KMH = 200.0

# Dashboard start position (Bien Hoa, Dong Nai); used until a first sample arrives.
INITIAL_LATITUDE = 10.9589
INITIAL_LONGITUDE = 106.8554

MAPS_LINK_TEMPLATE = "https://www.google.com/maps?q={lat},{lng}"
