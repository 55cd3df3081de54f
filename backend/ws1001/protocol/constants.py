"""Protocol constants for the WS-1001 console's PC link.

Frame layouts were reverse engineered from packet captures; see the
codec module for the NOWRECORD offsets.
"""

# Network defaults
BROADCAST_PORT = 6000  # UDP, discovery SEARCH
LISTEN_PORT = 6500  # TCP, console connects back here
BROADCAST_ADDRESS = "255.255.255.255"

# Name the PC software announces itself with
DEVICE_NAME = "PC2000"

# Record header field widths (bytes, NUL-terminated + NUL-padded)
DEVICE_NAME_WIDTH = 8
COMMAND_WIDTH = 8
ARGUMENT_WIDTH = 16
HEADER_SIZE = DEVICE_NAME_WIDTH + COMMAND_WIDTH + ARGUMENT_WIDTH  # 32

# Outgoing commands: header + 8 undeciphered bytes, sent as zero
COMMAND_RESERVED_SIZE = 8
COMMAND_SIZE = HEADER_SIZE + COMMAND_RESERVED_SIZE  # 40

# NOWRECORD: the last field read is the heat index at 0x65. The console
# sends two more reserved bytes (0x66-0x67) which are not required.
NOW_RECORD_MIN_SIZE = 0x66  # 102
NOW_RECORD_WIRE_SIZE = 0x68  # 104

# Upper bound for a single response read
MAX_FRAME_SIZE = 512
