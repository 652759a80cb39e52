"""directory/ -- User-directory operations gated by role and ownership.

Layer rule: directory/ may import from auth/ and core/, never from api/.
"""
