LOG_COLORS = {
    'DEBUG': '\033[94m',     # Blue
    'INFO': '\033[92m',      # Green
    'WARNING': '\033[93m',   # Yellow
    'ERROR': '\033[91m',     # Red
    'CRITICAL': '\033[91m',  # Red
}

# Module name tells which build stage emitted a message
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(module)s - %(message)s'

# 1 m3/s sustained for one hour = 3600 m3 = 0.0036 hm3
M3S_TO_HM3_PER_HOUR = 0.0036

# CASCADE TOPOLOGY
MAX_LOGGED_CASCADE_WARNINGS = 10
CYCLE_PATH_SEPARATOR = ' → '

VALID_PLANT_KINDS = ['Reservoir', 'RunOfRiver', 'PumpedStorage']

PLANT_COLUMNS_DEFAULTS = {
    'must_run': False,
    'downstream_plant_id': None,
    'water_travel_time_hours': 0.0,
    'min_generation_mw': 0.0,
}

DEFAULT_WATER_BALANCE_CONFIG = {
    'include_cascade': True,
    'include_spill': True,
    'plant_ids': [],
    'time_step_hours': 1.0,
    'spill_penalty': 1.0,
}
