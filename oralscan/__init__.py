"""OralScan: dental scan capture, review feed and report export service."""
