"""
Header names expected by the upstream gateway.
"""

TOKEN_HEADER = "X-ASTRABIT-API-KEY"
TOKEN_USER_HEADER = "X-ASTRABIT-USER-ID"
SIGNATURE_HEADER = "X-ASTRABIT-SIGNATURE"
TIMESTAMP_HEADER = "X-ASTRABIT-TIMESTAMP"
RECV_WINDOW_HEADER = "X-ASTRABIT-RECV-WINDOW"
