# Storage, survey number and report helpers
