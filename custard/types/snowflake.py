import typing as t

Snowflake = t.Union[str, int]
SnowflakeList = t.List[Snowflake]
