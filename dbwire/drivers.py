"""Per-driver connection parameter schemas."""

from __future__ import annotations

from types import MappingProxyType
from typing import Annotated, Any, ClassVar, Literal, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidatorFunctionWrapHandler,
    WrapValidator,
)

from .errors import UnknownDriverError
from .references import Reference


def _allow_reference(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    if isinstance(value, Reference):
        return value
    return handler(value)


def _scalar(value: Any) -> Any:
    if isinstance(value, (Reference, str, int, float, bool)):
        return value
    raise ValueError("Input should be a scalar value or a reference")


DynamicStr = Annotated[StrictStr, WrapValidator(_allow_reference)]
DynamicBool = Annotated[StrictBool, WrapValidator(_allow_reference)]
Port = Annotated[StrictInt, Field(ge=0, le=65535), WrapValidator(_allow_reference)]
Scalar = Annotated[Any, PlainValidator(_scalar)]
ReplicaId = Annotated[StrictStr, Field(min_length=1)]


class DriverSchema(BaseModel):
    """Fields accepted by every driver; subclasses add driver specific ones."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    driver_name: ClassVar[str]

    server_version: Optional[DynamicStr] = Field(default=None, alias="serverVersion")
    wrapper_class: Optional[DynamicStr] = Field(default=None, alias="wrapperClass")
    default_table_options: Optional[dict[StrictStr, Any]] = Field(
        default=None, alias="defaultTableOptions"
    )
    driver_options: Optional[dict[Any, Any]] = Field(default=None, alias="driverOptions")
    primary: Optional[dict[StrictStr, Scalar]] = None
    replica: Optional[dict[ReplicaId, dict[StrictStr, Scalar]]] = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """Names accepted in raw configuration (aliases where declared)."""

        return tuple(field.alias or name for name, field in cls.model_fields.items())

    def to_params(self) -> dict[str, Any]:
        """Return the explicitly provided fields keyed by their configuration names."""

        fields = type(self).model_fields
        return {
            fields[name].alias or name: getattr(self, name)
            for name in fields
            if name in self.model_fields_set
        }


class PdoSqliteSchema(DriverSchema):
    driver_name: ClassVar[str] = "pdo_sqlite"

    driver: Literal["pdo_sqlite"]
    memory: Optional[DynamicBool] = None
    password: Optional[DynamicStr] = None
    path: Optional[DynamicStr] = None
    user: Optional[DynamicStr] = None
    host: Optional[DynamicStr] = None


class Sqlite3Schema(DriverSchema):
    driver_name: ClassVar[str] = "sqlite3"

    driver: Literal["sqlite3"]
    memory: Optional[DynamicBool] = None
    path: Optional[DynamicStr] = None
    host: Optional[DynamicStr] = None


class PdoMysqlSchema(DriverSchema):
    driver_name: ClassVar[str] = "pdo_mysql"

    driver: Literal["pdo_mysql"]
    charset: Optional[DynamicStr] = None
    dbname: Optional[DynamicStr] = None
    host: Optional[DynamicStr] = None
    password: Optional[DynamicStr] = None
    port: Optional[Port] = None
    unix_socket: Optional[DynamicStr] = None
    user: Optional[DynamicStr] = None


class MysqliSchema(DriverSchema):
    driver_name: ClassVar[str] = "mysqli"

    driver: Literal["mysqli"]
    charset: Optional[DynamicStr] = None
    dbname: Optional[DynamicStr] = None
    host: Optional[DynamicStr] = None
    password: Optional[DynamicStr] = None
    port: Optional[Port] = None
    ssl_ca: Optional[DynamicStr] = None
    ssl_capath: Optional[DynamicStr] = None
    ssl_cert: Optional[DynamicStr] = None
    ssl_cipher: Optional[DynamicStr] = None
    ssl_key: Optional[DynamicStr] = None
    unix_socket: Optional[DynamicStr] = None
    user: Optional[DynamicStr] = None


class PdoPgsqlSchema(DriverSchema):
    driver_name: ClassVar[str] = "pdo_pgsql"

    driver: Literal["pdo_pgsql"]
    application_name: Optional[DynamicStr] = None
    charset: Optional[DynamicStr] = None
    dbname: Optional[DynamicStr] = None
    gssencmode: Optional[DynamicStr] = None
    host: Optional[DynamicStr] = None
    password: Optional[DynamicStr] = None
    port: Optional[Port] = None
    sslcert: Optional[DynamicStr] = None
    sslcrl: Optional[DynamicStr] = None
    sslkey: Optional[DynamicStr] = None
    sslmode: Optional[DynamicStr] = None
    sslrootcert: Optional[DynamicStr] = None
    user: Optional[DynamicStr] = None


class _OracleSchema(DriverSchema):
    """Fields shared by both Oracle drivers."""

    charset: Optional[DynamicStr] = None
    connectstring: Optional[DynamicStr] = None
    dbname: Optional[DynamicStr] = None
    exclusive: Optional[DynamicBool] = None
    host: Optional[DynamicStr] = None
    instancename: Optional[DynamicStr] = None
    password: Optional[DynamicStr] = None
    persistent: Optional[DynamicBool] = None
    pooled: Optional[DynamicBool] = None
    port: Optional[Port] = None
    protocol: Optional[DynamicStr] = None
    service: Optional[DynamicBool] = None
    servicename: Optional[DynamicStr] = None
    user: Optional[DynamicStr] = None


class PdoOciSchema(_OracleSchema):
    driver_name: ClassVar[str] = "pdo_oci"

    driver: Literal["pdo_oci"]


class Oci8Schema(_OracleSchema):
    driver_name: ClassVar[str] = "oci8"

    driver: Literal["oci8"]


class _SqlServerSchema(DriverSchema):
    """Fields shared by both SQL Server drivers."""

    dbname: Optional[DynamicStr] = None
    host: Optional[DynamicStr] = None
    password: Optional[DynamicStr] = None
    port: Optional[Port] = None
    user: Optional[DynamicStr] = None


class PdoSqlsrvSchema(_SqlServerSchema):
    driver_name: ClassVar[str] = "pdo_sqlsrv"

    driver: Literal["pdo_sqlsrv"]


class SqlsrvSchema(_SqlServerSchema):
    driver_name: ClassVar[str] = "sqlsrv"

    driver: Literal["sqlsrv"]


class IbmDb2Schema(DriverSchema):
    driver_name: ClassVar[str] = "ibm_db2"

    driver: Literal["ibm_db2"]
    dbname: Optional[DynamicStr] = None
    host: Optional[DynamicStr] = None
    password: Optional[DynamicStr] = None
    persistent: Optional[DynamicBool] = None
    port: Optional[Port] = None
    user: Optional[DynamicStr] = None


DRIVER_SCHEMAS: Mapping[str, type[DriverSchema]] = MappingProxyType(
    {
        schema.driver_name: schema
        for schema in (
            PdoSqliteSchema,
            Sqlite3Schema,
            PdoMysqlSchema,
            MysqliSchema,
            PdoPgsqlSchema,
            PdoOciSchema,
            Oci8Schema,
            PdoSqlsrvSchema,
            SqlsrvSchema,
            IbmDb2Schema,
        )
    }
)


def supported_drivers() -> tuple[str, ...]:
    return tuple(sorted(DRIVER_SCHEMAS))


def schema_for(driver: object, *, path: str | None = None) -> type[DriverSchema]:
    """Return the schema registered for ``driver``.

    Raises:
        UnknownDriverError: If no schema is registered under that name.
    """

    if isinstance(driver, str) and driver in DRIVER_SCHEMAS:
        return DRIVER_SCHEMAS[driver]
    raise UnknownDriverError(driver, supported_drivers(), path=path)


__all__ = [
    "DRIVER_SCHEMAS",
    "DriverSchema",
    "DynamicBool",
    "DynamicStr",
    "IbmDb2Schema",
    "MysqliSchema",
    "Oci8Schema",
    "PdoMysqlSchema",
    "PdoOciSchema",
    "PdoPgsqlSchema",
    "PdoSqliteSchema",
    "PdoSqlsrvSchema",
    "Port",
    "Scalar",
    "Sqlite3Schema",
    "SqlsrvSchema",
    "schema_for",
    "supported_drivers",
]
