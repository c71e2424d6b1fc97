"""
Bearer token verification.

Tokens are issued and signed by the hosted auth backend; this service only
checks the signature and expiry and reads the subject.
"""
import jwt
from fastapi import HTTPException, status

from collab.core import config


def verify_jwt_token(token: str) -> dict:
    """
    Verify a bearer token and return its payload.
    
    Args:
        token: JWT token from Authorization header
        
    Returns:
        Decoded JWT payload; `sub` holds the user id
        
    Raises:
        HTTPException: If token is invalid or expired
    """
    if not config.JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token verification is not configured",
        )
    try:
        return jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            audience=config.JWT_AUDIENCE,
            options={"verify_aud": config.JWT_AUDIENCE is not None, "require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
