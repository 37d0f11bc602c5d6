"""Ganeti RAPI client.

Client library for the Ganeti remote API (RAPI) that turns JSON responses
for cluster info, instances, nodes and jobs into typed, introspectable
resource objects.
"""

__version__ = "0.1.0"
