"""Indexing node metadata tables.

These tables are owned and migrated by the indexing node, not by this
project. Only the columns the reclaimer reads or filters on are declared.
Every table has a text ``id`` whose prefix encodes the owning deployment:
the first 46 characters are the deployment id, or the first 40 characters
are the id of one of the deployment's dynamic data sources.

The declared schema is ``subgraphs``; engines remap it to
``settings.metadata_schema`` through ``schema_translate_map``.
"""

from sqlalchemy import Column, MetaData, Numeric, Table, Text

METADATA_SCHEMA = "subgraphs"

DEPLOYMENT_ID_LENGTH = 46
DATA_SOURCE_ID_LENGTH = 40

metadata_registry = MetaData(schema=METADATA_SCHEMA)


def _entity_table(name: str, *columns: Column) -> Table:
    return Table(name, metadata_registry, Column("id", Text, primary_key=True), *columns)


dynamic_data_source = _entity_table(
    "dynamic_ethereum_contract_data_source",
    Column("deployment", Text, nullable=False),
)

block_handler = _entity_table("ethereum_block_handler_entity")
block_handler_filter = _entity_table("ethereum_block_handler_filter_entity")
call_handler = _entity_table("ethereum_call_handler_entity")
contract_abi = _entity_table("ethereum_contract_abi")
contract_data_source = _entity_table("ethereum_contract_data_source")
data_source_template = _entity_table("ethereum_contract_data_source_template")
data_source_template_source = _entity_table("ethereum_contract_data_source_template_source")
event_handler = _entity_table("ethereum_contract_event_handler")
contract_mapping = _entity_table("ethereum_contract_mapping")
contract_source = _entity_table("ethereum_contract_source")
subgraph_deployment = _entity_table(
    "subgraph_deployment",
    Column("entity_count", Numeric, nullable=True),
    Column("latest_ethereum_block_number", Numeric, nullable=True),
)
deployment_assignment = _entity_table("subgraph_deployment_assignment")
deployment_detail = _entity_table("subgraph_deployment_detail")
subgraph_error = _entity_table("subgraph_error")
subgraph_manifest = _entity_table("subgraph_manifest")

# Tables whose ids carry the deployment or data source prefix, in deletion order
PREFIX_OWNED_TABLES: tuple[Table, ...] = (
    block_handler,
    block_handler_filter,
    call_handler,
    contract_abi,
    contract_data_source,
    data_source_template,
    data_source_template_source,
    event_handler,
    contract_mapping,
    contract_source,
    subgraph_deployment,
    deployment_assignment,
    deployment_detail,
    subgraph_error,
    subgraph_manifest,
)
