"""Infrastructure layer: settings, logging and the secure XML parser."""
