"""
Snitch reads and optionally reports ECS cluster capacity to assist with auto scaling.

For every cluster it finds the largest container currently running (the
"lowest common multiple") and counts, per EC2 instance type, how many such
containers the cluster's container instances can hold in total and have room
for right now. Findings can be published to CloudWatch.
"""

__version__ = "0.1.0"
