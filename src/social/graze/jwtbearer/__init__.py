"""
JWT Bearer Assertion Authentication

This package authenticates OAuth2 clients, typically IoT devices, that present
a signed JWT assertion (RFC 7523 jwt-bearer) instead of a client secret.

Key Components:
- codec.py: base64url and byte concatenation for compact JWT segments
- claims.py: splitting and decoding a token into header, claims and signature
- signature.py: RS256 verification against a PEM public key
- validation.py: expiration and audience checks
- providers.py: device public key resolver and client registry contracts
- header.py: client assertion header verification for proxy-bound requests
- authenticator.py: the end-to-end validation pipeline
- mint.py: creation of assertion tokens and client assertion headers
- config.py: pydantic settings and authenticator construction
- metrics.py: metrics abstraction over Telegraf/StatsD

Authentication Modes:
1. Direct
   - The device signs its own assertion
   - The key is resolved from the token's tenant_id and sub claims

2. Proxy-bound
   - A trusted signer (gateway or issuing authority) signs the assertion and
     the caller supplies that signer's public key
   - The device signs a client assertion header with its own key
   - The header and the token must name the same tenant and device

Every rejection is an AuthenticationError subclass with a stable error code.
"""
