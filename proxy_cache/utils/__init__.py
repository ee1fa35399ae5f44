"""Building blocks of the proxy: key derivation, cache store, in-flight registry."""
