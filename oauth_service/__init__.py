"""OAuth 2.0 token issuance service"""
