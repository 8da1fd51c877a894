"""Schema set ``v1.0-snapshot``: properties needed for a flow snapshot run."""

from ..schema_registry import block_schema, number, string

SNAPSHOT_SCHEMAS = [
    block_schema(
        "Pipe",
        string("elevationProfile", dimension="string", title="Elevation Profile"),
        number("diameter", gt=0, dimension="length", default_unit="m", title="Diameter"),
        number("uValue", gt=0, dimension="uValue", default_unit="W/m²*K", title="U-Value"),
        number("ambientTemperature", gt=0, dimension="temperature", default_unit="°C",
               title="Ambient Temperature"),
    ),
    block_schema(
        "Compressor",
        number("pressure", gt=0, dimension="pressure", default_unit="bar", title="Outlet pressure"),
        number("efficiency", gt=0, le=1, dimension="efficiency", title="Efficiency"),
    ),
    block_schema(
        "Ship",
        number("frequency", gt=0, dimension="ship-frequency", default_unit="ships per day",
               title="Ship frequency"),
        number("speed", gt=0, dimension="speed", default_unit="m/s", title="Speed"),
    ),
    block_schema(
        "Source",
        number("flowrate", gt=0, dimension="massFlowrate", default_unit="Mt/a", title="Flowrate"),
        number("pressure", gt=0, dimension="pressure", default_unit="bar", title="Pressure"),
        number("temperature", dimension="temperature", default_unit="°C", title="Temperature"),
    ),
    block_schema(
        "Reservoir",
        number("pressure", gt=0, dimension="pressure", default_unit="bar", title="Pressure"),
    ),
]
