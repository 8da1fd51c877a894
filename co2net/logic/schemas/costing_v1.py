"""Schema set ``v1.0-costing``: operation-agnostic blocks mapped onto cost modules.

Dimensional values declared with ``string`` carry their unit in the value,
e.g. ``"100 MW"``.
"""

from ..schema_registry import block_schema, enum, number, string

PRESSURE_CLASS = ("ep", "mp", "lp")


def _power(name: str, title: str, default_unit: str = "MW", required: bool = False, **extra):
    return string(name, required=required, dimension="power", default_unit=default_unit,
                  title=title, **extra)


PIPE = block_schema(
    "Pipe",
    enum("phase", "gas", "dense", title="CO2 phase",
         description="Gas phase or dense (supercritical) phase"),
    enum("location", "onshore", "offshore", title="Location",
         description="Onshore (buried) or offshore (subsea)"),
    enum("size", "small", "medium", "large", title="Size",
         description="Pipeline diameter category"),
    number("length", gt=0, dimension="length", default_unit="km", title="Pipeline length"),
    number("crossings_frequency", ge=0, required=False, title="Crossing frequency",
           description="Number of crossings per 10km"),
    number("compressor_duty", gt=0, required=False, dimension="power", default_unit="MW",
           title="Compressor duty"),
    number("cooling_duty", gt=0, required=False, dimension="power", default_unit="MW",
           title="Cooling duty"),
    number("pump_duty", gt=0, required=False, dimension="power", default_unit="MW",
           title="Pump duty"),
    description="Generic CO2 transport pipeline",
)

COMPRESSOR = block_schema(
    "Compressor",
    enum("pressure_range", "lp", "hp", "booster", title="Pressure range",
         description="LP (1-40 bar), HP (40-120 bar), or Booster"),
    enum("drive_type", "electric", "gas", required=False, title="Drive type",
         description="Electric or gas driven"),
    _power("compressor_duty", "Compressor duty",
           description="Mechanical power required by the compressor"),
    _power("cooling_duty", "Cooling duty", description="Heat duty of the after-cooler"),
    _power("electrical_power_compressor", "Compressor electrical power", default_unit="kW",
           description="Electrical power consumption of the compressor motor"),
    _power("electrical_power_cooler", "Cooler electrical power", default_unit="kW",
           description="Electrical power consumption of the after-cooler fans"),
)

PUMP = block_schema(
    "Pump",
    enum("pump_type", "booster", "export", required=False, title="Pump type"),
    enum("drive_type", "electric", "gas", required=False, title="Drive type"),
    number("pump_duty", gt=0, dimension="power", default_unit="MW", title="Pump duty"),
)

EMITTER = block_schema(
    "Emitter",
    enum("emitter_type", "cement", "steel", "ammonia", "gas_power", "coal_power",
         "refinery", "waste_to_energy", "dac",
         title="Emitter type", description="Type of CO2 emission source"),
)

CAPTURE_UNIT = block_schema(
    "CaptureUnit",
    enum("capture_technology", "amine", "inorganic_solvents", "cryogenic", "psa_tsa", "membrane",
         title="Capture technology", description="CO2 capture technology type"),
    string("mass_flow", required=False, dimension="mass_flow_rate", default_unit="t/h",
           title="Mass flow"),
)

DEHYDRATION = block_schema(
    "Dehydration",
    enum("dehydration_type", "molecular_sieve", "glycol", title="Dehydration type"),
    number("mass_flow_co2", gt=0, dimension="mass_flow_rate", default_unit="MTPA",
           title="Mass flow CO2"),
    number("heat_duty", gt=0, required=False, dimension="power", default_unit="kW",
           title="Heat duty"),
)

REFRIGERATION = block_schema(
    "Refrigeration",
    enum("pressure_class", *PRESSURE_CLASS, title="Pressure class",
         description="Elevated (EP), Medium (MP), or Low (LP) pressure"),
    enum("cooling_method", "water", "air", "ammonia", title="Cooling method"),
    _power("heat_duty", "Heat duty"),
    string("cooling_water", required=False, dimension="volumetric_flow_rate", default_unit="m3/h",
           title="Cooling water flow", description="Cooling water flow rate (10°C temp rise)"),
)

METERING = block_schema(
    "Metering",
    enum("metering_type", "fiscal_36", "fiscal_24", "fiscal_14", "compositional",
         title="Metering type"),
    number("number_of_systems", gt=0, integer=True, title="Number of systems"),
)

STORAGE = block_schema(
    "Storage",
    enum("pressure_class", *PRESSURE_CLASS, title="Pressure class",
         description="Elevated (EP), Medium (MP), or Low (LP) pressure"),
    number("storage_capacity", gt=0, dimension="volume", default_unit="m3",
           title="Storage capacity"),
    number("pump_duty", gt=0, required=False, dimension="power", default_unit="MW",
           title="Pump duty"),
)

SHIPPING = block_schema(
    "Shipping",
    enum("pressure_class", *PRESSURE_CLASS, title="Pressure class"),
)

LAND_TRANSPORT = block_schema(
    "LandTransport",
    enum("mode", "truck", "rail", title="Transport mode"),
)

LOADING_OFFLOADING = block_schema(
    "LoadingOffloading",
    enum("facility_type", "truck", "rail", "jetty", title="Facility type"),
    number("number_of_sets", gt=0, integer=True, required=False,
           title="Number of equipment sets"),
    number("mass_co2", gt=0, required=False, dimension="mass", default_unit="kg",
           title="Mass of CO2"),
)

HEATING_AND_PUMPING = block_schema(
    "HeatingAndPumping",
    enum("pressure_class", *PRESSURE_CLASS, title="Pressure class"),
    enum("drive_type", "electric", required=False, title="Drive type"),
    number("pump_duty", gt=0, dimension="power", default_unit="MW", title="Pump duty"),
    number("heater_duty", gt=0, dimension="power", default_unit="MW", title="Heater duty"),
)

PIPE_MERGE = block_schema(
    "PipeMerge",
    enum("phase", "gas", "dense", title="Phase"),
)

INJECTION_WELL = block_schema(
    "InjectionWell",
    enum("location", "onshore", "offshore", title="Location"),
    number("number_of_wells", gt=0, integer=True, title="Number of wells"),
    number("well_depth", gt=0, required=False, dimension="length", default_unit="m",
           title="Well depth"),
)

INJECTION_TOPSIDES = block_schema(
    "InjectionTopsides",
    enum("location", "onshore", "offshore", title="Location"),
    _power("pump_motor_rating", "Pump motor rating", default_unit="kW"),
    string("pump_flowrate", required=False, dimension="volumetric_flow_rate", default_unit="m3/h",
           title="Pump flowrate (volumetric)"),
    _power("heater_duty", "Heater duty"),
    _power("electrical_power_pump", "Pump electrical power", default_unit="kW"),
    _power("electrical_power_heater", "Heater electrical power", default_unit="kW"),
)

UTILISATION_ENDPOINT = block_schema("UtilisationEndpoint")

OFFSHORE_PLATFORM = block_schema(
    "OffshorePlatform",
    enum("platform_type", "fisu", "buoy", "floater", "jackup", title="Platform type",
         description="FISU, Direct injection buoy, Floater, or Jackup"),
    number("number_of_fisu_vessels", gt=0, integer=True, required=False,
           title="Number of FISU vessels"),
    number("number_of_buoys", gt=0, integer=True, required=False, title="Number of buoys"),
    number("number_of_floaters", gt=0, integer=True, required=False, title="Number of floaters"),
    number("number_of_jackups", gt=0, integer=True, required=False, title="Number of jackups"),
)

COSTING_SCHEMAS = [
    PIPE,
    COMPRESSOR,
    PUMP,
    EMITTER,
    CAPTURE_UNIT,
    DEHYDRATION,
    REFRIGERATION,
    METERING,
    STORAGE,
    SHIPPING,
    LAND_TRANSPORT,
    LOADING_OFFLOADING,
    HEATING_AND_PUMPING,
    PIPE_MERGE,
    INJECTION_WELL,
    INJECTION_TOPSIDES,
    UTILISATION_ENDPOINT,
    OFFSHORE_PLATFORM,
]
