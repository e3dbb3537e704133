"""Parsing and verification of AWS Signature Version 4 Authorization headers."""