# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests driving relations from a host system's point of view."""
