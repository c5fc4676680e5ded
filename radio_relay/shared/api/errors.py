E_INTERNAL = "E_INTERNAL_ERROR"
E_INVALID_PARAMS = "E_INVALID_PARAMS"
E_UPSTREAM_UNAVAILABLE = "E_UPSTREAM_UNAVAILABLE"
