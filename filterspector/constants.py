import re
SCRIPT_NAME = "FilterSpector"
SCRIPT_VERSION = "0.3.0"
# TRACE FORMAT (mdf2csv)
TRACE_REQUIRED_COLUMNS = ('TimestampEpoch', 'BusChannel', 'ID', 'IDE', 'DLC', 'DataLength', 'Dir', 'EDL', 'BRS', 'ESI', 'RTR', 'DataBytes')
DEFAULT_TRACE_DELIMITER = ';'
DEFAULT_MAX_TRACE_SIZE_MB = 50
HEX_ID_RE = re.compile(r'^[0-9A-Fa-f]+$')
PAYLOAD_HEX_RE = re.compile(r'^[0-9A-Fa-f\s]*$')
UTF8_BOM = '\ufeff'
# DICTIONARY (DBC) PATTERNS
DBC_CHANNEL_PREFIX_RE = re.compile(r'^can(\d{1,2})-')
DBC_PROTOCOL_TYPE_RE = re.compile(r'BA_\s+"ProtocolType"\s+"([^"]+)"')
DBC_MESSAGE_RE = re.compile(r'BO_\s+(\d+)\s+(\w+)\s*:\s*(\d+)\s+([\w\-]+)')
DBC_MESSAGE_LINE_RE = re.compile(r'^BO_\s+(\d+)\s+(\w+)\s*:')
DBC_SIGNAL_LINE_RE = re.compile(r'^SG_\s+(\w+)\s*(?:[mM]\d*[mM]?\s*)?:')
DBC_MESSAGE_COMMENT_RE = re.compile(r'CM_\s+BO_\s+(\d+)\s+"([^"\\]*(?:\\.[^"\\]*)*)"\s*;')
DBC_SECTION_RESET_PREFIXES = ('CM_', 'BA_', 'VAL_', 'BO_TX_BU_')
DBC_MIN_CHANNEL = 1
DBC_MAX_CHANNEL = 11
J1939_PROTOCOL_NAME = 'J1939'
# CAN IDENTIFIER LIMITS
STANDARD_ID_MAX = 0x7FF
EXTENDED_ID_MAX = 0x1FFFFFFF
EXTENDED_ID_MASK_29BIT = 0x1FFFFFFF
# J1939
PDU2_MIN_PDU_FORMAT = 240
PDU1_PGN_MASK = 0x3FF0000
PDU2_PGN_MASK = 0x3FFFF00
OBD_RESPONSE_PGN = 0xDA00
# OBD SUPPORTED PIDS
OBD_RESPONSE_ID_11BIT = 0x7E8
OBD_REQUEST_ID_11BIT = 0x7DF
OBD_REQUEST_ID_29BIT = 0x18DB33F1
OBD2_SUPPORTED_PIDS_PREFIX = '0641'
WWH_OBD_SUPPORTED_PIDS_MARKER = '62F4'
SUPPORTED_PIDS_QUERY_VALUES = (0x00, 0x20, 0x40, 0x60, 0x80, 0xA0, 0xC0)
SUPPORTED_PIDS_RANGE_PIDS = (0x20, 0x40, 0x60, 0x80, 0xA0, 0xC0, 0xE0)
MIN_SUPPORTED_PIDS_RESPONSE_HEX = 16
# FILTER / PRESCALER LIMITS
MAX_FILTER_NAME_LENGTH = 16
MAX_PRESCALER_IDS_PER_CHANNEL = 100
COUNT_PRESCALER_MIN = 1
COUNT_PRESCALER_MAX = 256
TIME_PRESCALER_MIN_MS = 1
TIME_PRESCALER_MAX_MS = 4194304
TIME_PRESCALER_RESOLUTION_DIGITS = 3
MAX_11BIT_FILTERS = 128
MAX_29BIT_FILTERS = 64
MAX_COMBINED_FILTERS = 64
# SIZE ESTIMATION (MF4 measurements, relative to 8 byte frames)
DEFAULT_FRAME_WEIGHT_SCALE = 4.0
FRAME_WEIGHT_ANCHORS = ((8, 1.0), (12, 1.75), (16, 2.12), (64, 4.16))
MF4_RATIO_MIN = 0.33
MF4_RATIO_MAX = 0.48
MF4_RATIO_MIN_LENGTH = 8
MF4_RATIO_MAX_LENGTH = 12
MFC_TO_MF4_RATIO = 0.5
DEFAULT_AVG_DATA_LENGTH = 8
# REPORT
DEFAULT_SUMMARY_LIMIT = 30
DEFAULT_CHART_LIMIT = 20
BYTES_PER_MB = 1024 * 1024
