import logging

# Diagnostic (local) logger; relayed container output never goes through it
# except for the debug mirror in the stream pumps.
logger = logging.getLogger("sidecar_relay")
