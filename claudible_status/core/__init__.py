from claudible_status.core.exceptions import (
    ClaudibleError as ClaudibleError,
    ClientError as ClientError,
    ConfigurationError as ConfigurationError,
)
from claudible_status.core.utils import (
    mask_credential as mask_credential,
    normalize_credential as normalize_credential,
)
