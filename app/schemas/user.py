"""
User Pydantic schemas
用户数据验证和序列化模型
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
import re

USERNAME_PATTERN = r'^[A-Za-z0-9_]+$'
EMAIL_PATTERN = r'^[^\s@]+@[^\s@]+\.[^\s@]+$'


class UserCreate(BaseModel):
    """User registration schema"""
    username: str = Field(..., min_length=3, max_length=20, description="用户名")
    password: str = Field(..., min_length=6, max_length=100, description="密码")
    email: Optional[str] = Field(None, max_length=100, description="邮箱地址，缺省时由用户名生成")
    display_name: Optional[str] = Field(None, max_length=100, description="显示名称")
    avatar_url: Optional[str] = Field(None, max_length=500, description="头像地址")
    bio: Optional[str] = Field(None, max_length=1000, description="个人简介")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        """验证用户名格式"""
        if not re.match(USERNAME_PATTERN, v):
            raise ValueError('用户名只能包含字母、数字和下划线')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """验证邮箱格式"""
        if v is not None and not re.match(EMAIL_PATTERN, v):
            raise ValueError('邮箱格式不正确')
        return v


class UserLogin(BaseModel):
    """User login schema"""
    username: str = Field(..., min_length=1, description="用户名")
    password: str = Field(..., min_length=1, description="密码")


class UserProfileUpdate(BaseModel):
    """Profile update schema; omitted fields are left unchanged"""
    display_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=1000)


class UserResponse(BaseModel):
    """User response schema, never carries the password hash"""
    id: int
    username: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    is_active: bool = Field(default=True, description="账号状态")
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicUserProfile(BaseModel):
    """Profile visible to other users"""
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserToken(BaseModel):
    """Token response returned by register and login"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AuthenticatedUser(BaseModel):
    """Principal resolved from a verified token"""
    user_id: int
    username: str
