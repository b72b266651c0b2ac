"""SparkGarden: idea research and blueprint service."""
