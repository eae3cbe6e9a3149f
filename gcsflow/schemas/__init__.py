# ruff: noqa
from .schema import Field, Schema
