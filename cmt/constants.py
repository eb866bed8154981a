"""Centralized constants for the migration tool."""

# SSH Configuration Options
SSH_NO_HOST_CHECK = "StrictHostKeyChecking=no"
SSH_NO_KNOWN_HOSTS = "UserKnownHostsFile=/dev/null"
SSH_ERROR_LOG_LEVEL = "LogLevel=ERROR"
SSH_BATCH_MODE = "BatchMode=yes"
DEFAULT_SSH_PORT = 22

# Endpoint scheme for remote hosts
SSH_SCHEME = "ssh"

# Directory and file layout imposed on both hosts
IMAGES_DIR = "images"
PREDUMP_ARCHIVE = "predump.tar.gz"
DUMP_ARCHIVE = "dump.tar.gz"
CONFIG_FILE = "config.json"
RUNTIME_FILE = "runtime.json"

# Image generation indexes used in pre-dump mode
PREDUMP_GENERATION = 0
FINAL_GENERATION = 1
