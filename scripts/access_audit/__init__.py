"""Organisation access audit.

Captures a GitHub organisation (members, nested teams, repositories and
their collaborators), resolves effective team membership and explains each
repository's access as named teams plus leftover individuals.
"""
