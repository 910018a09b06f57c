from flask_jwt_extended import get_jwt, get_jwt_identity

from app.utils.errors import ApiError


def actor_actual() -> str:
    """
    Quién ejecuta la petición, para created_by / changed_by.
    Prioriza el claim `email`; si no viene, usa la identidad del token.
    """
    claims = get_jwt() or {}
    email = str(claims.get("email") or "").strip().lower()
    if email:
        return email

    identidad = get_jwt_identity()
    if identidad is None or str(identidad).strip() == "":
        raise ApiError("Token inválido", 401)
    return str(identidad).strip()
