GUESTS_URL = "/api/v1/guests"
GUEST_STATS_URL = f"{GUESTS_URL}/stats"
GUEST_URL = f"{GUESTS_URL}/{{unit_id}}"
CONFIRM_GUEST_URL = f"{GUEST_URL}/confirm"
REVERT_GUEST_URL = f"{GUEST_URL}/pending"
SOFT_DELETE_GUEST_URL = f"{GUEST_URL}/delete"
RESTORE_GUEST_URL = f"{GUEST_URL}/restore"
GUEST_STATUS_URL = f"{GUEST_URL}/status"
