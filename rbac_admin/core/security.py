"""
认证相关核心文件：密码哈希、访问令牌签发与解析
rbac_admin/core/security.py
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union, Dict
from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi.security import OAuth2PasswordBearer

from rbac_admin.core.config import settings

# ------------------------------
# 密码加密上下文
# ------------------------------
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)

# ------------------------------
# OAuth2配置（auto_error=False：缺失token由AuthService统一抛401）
# ------------------------------
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    scheme_name="OAuth2PasswordBearer",
    auto_error=False
)

# ------------------------------
# 密码加密（截断到72字节）
# ------------------------------
def get_password_hash(password: str) -> str:
    """
    加密密码：
    1. 将字符串密码编码为UTF-8字节（处理中文/特殊字符）
    2. 截断到72字节（符合bcrypt限制）
    3. 哈希处理
    """
    password_bytes = password.encode("utf-8")[:72]
    return pwd_context.hash(password_bytes)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """明文密码按加密逻辑同样编码+截断后与哈希值比对"""
    plain_password_bytes = plain_password.encode("utf-8")[:72]
    return pwd_context.verify(plain_password_bytes, hashed_password)

# ------------------------------
# Token生成/解析
# ------------------------------
def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """创建访问令牌（Access Token），sub为用户ID"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"exp": expire, "sub": str(subject), "type": "access"}
    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )

def decode_jwt_token(token: str) -> Dict[str, Any]:
    """
    解码JWT令牌

    Raises:
        JWTError: 如果token无效或已过期
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

def extract_token_subject(token: str) -> str:
    """
    从访问令牌中提取subject（用户ID）

    Raises:
        JWTError: token无效、已过期、类型不是access或缺少sub
    """
    payload = decode_jwt_token(token)
    if payload.get("type") != "access" or not payload.get("sub"):
        raise JWTError("Token is not a valid access token")
    return payload["sub"]
