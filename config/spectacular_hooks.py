"""
Hooks for drf-spectacular schema generation.
"""

TOKEN_AUTH_SCHEME = {
    'type': 'apiKey',
    'in': 'header',
    'name': 'Authorization',
    'description': 'Token-based authentication. Format: `Token <your-token>`'
}


def keep_token_security_scheme(result, generator, request, public):
    """Session auth is for the admin only; advertise token auth alone."""
    components = result.get('components', {})
    if 'securitySchemes' in components:
        components['securitySchemes'] = {'TokenAuth': TOKEN_AUTH_SCHEME}
    return result
