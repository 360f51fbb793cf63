from __future__ import annotations

from functools import partial
from typing import Any, Dict, List, Optional

from plotpilot.core.schema import (
    array_field,
    boolean_field,
    enum_field,
    object_schema,
    record_field,
    string_field,
)
from plotpilot.core.tool_schemas import ToolDefinition
from plotpilot.store.base import PropertyStore
from plotpilot.store.contracts import Property

NO_MATCH_SUMMARY = "No properties found matching your criteria."

STATUS_FILTERS = ("sold", "available", "rented")


def _type_label(prop: Property) -> str:
    return prop.property_type or "N/A"


def filter_properties(
    properties: List[Property], *, filter: Optional[str] = None, location: Optional[str] = None
) -> List[Property]:
    """
    Location first (substring of address), then one status/type filter.

    "sold", "available" and "rented" are status keywords; any other filter
    is a substring match on the property type. Both matches ignore case.
    """
    result = list(properties)

    if location:
        needle = location.lower()
        result = [p for p in result if needle in p.address.lower()]

    if filter:
        key = filter.strip().lower()
        if key == "sold":
            result = [p for p in result if p.is_sold_on_installment]
        elif key == "available":
            result = [p for p in result if not p.is_sold_on_installment and not p.is_rented]
        elif key == "rented":
            result = [p for p in result if p.is_rented]
        else:
            result = [p for p in result if key in (p.property_type or "").lower()]

    return result


def summarize_properties(items: List[Dict[str, Any]]) -> str:
    if not items:
        return NO_MATCH_SUMMARY
    noun = "property" if len(items) == 1 else "properties"
    pairs = ", ".join(f"{p['name']} ({p['propertyType']})" for p in items)
    return f"Found {len(items)} {noun}. {pairs}."


# ----------------------------
# listProperties
# ----------------------------

LIST_PROPERTIES_INPUT = object_schema(
    {
        "filter": string_field(
            "Optional filter criteria, e.g., 'available', 'sold', 'rented', "
            "or by property type like 'house', 'plot'.",
            required=False,
        ),
        "location": string_field(
            "Optional location filter, e.g., 'DHA Lahore', 'Bahria Town Karachi'.",
            required=False,
        ),
    }
)

PROPERTY_SUMMARY_ITEM = object_schema(
    {
        "id": string_field(),
        "name": string_field(),
        "address": string_field(),
        "propertyType": string_field(),
        "status": string_field(),
    }
)

LIST_PROPERTIES_OUTPUT = object_schema(
    {
        "properties": array_field(
            PROPERTY_SUMMARY_ITEM,
            "List of properties with their basic details including type and status.",
        ),
        "summary": string_field("A human-readable summary of the properties found.", min_length=1),
    }
)


async def list_properties(
    store: PropertyStore, filter: Optional[str] = None, location: Optional[str] = None
) -> Dict[str, Any]:
    matches = filter_properties(await store.list_all(), filter=filter, location=location)
    items = [
        {
            "id": p.id,
            "name": p.name,
            "address": p.address,
            "propertyType": _type_label(p),
            "status": p.status,
        }
        for p in matches
    ]
    return {"properties": items, "summary": summarize_properties(items)}


# ----------------------------
# addProperty
# ----------------------------

ADD_PROPERTY_INPUT = object_schema(
    {
        "name": string_field(
            'The name of the new property (e.g., "Shadman House", "DHA Phase 5 Plot").', min_length=1
        ),
        "address": string_field(
            "The full address of the new property, including society, block, city if possible.",
            min_length=1,
        ),
        "propertyType": string_field(
            'Type of property, e.g., "Residential Plot", "Commercial Plot", "House", "File", "Shop", "Apartment".',
            required=False,
        ),
    }
)

ADD_PROPERTY_OUTPUT = object_schema(
    {
        "propertyId": string_field("The ID of the newly created property.", min_length=1),
        "message": string_field("Confirmation message.", min_length=1),
    }
)


async def add_property(
    store: PropertyStore, name: str, address: str, propertyType: Optional[str] = None
) -> Dict[str, Any]:
    created = await store.create(
        {
            "name": name,
            "address": address,
            "propertyType": propertyType,
            "plots": [],
            "isRented": False,
            "isSoldOnInstallment": False,
        }
    )
    type_text = created.property_type or "Type N/A"
    return {
        "propertyId": created.id,
        "message": (
            f'Successfully added property "{created.name}" ({type_text}) with ID {created.id}. '
            "You can add more details like images or plots via the Properties page."
        ),
    }


# ----------------------------
# getPropertyDetails
# ----------------------------

GET_PROPERTY_DETAILS_INPUT = object_schema(
    {
        "identifier": string_field("The ID or exact name of the property to retrieve details for."),
        "identifierType": enum_field(
            ["id", "name"], "Specify if the identifier is a property ID or name."
        ),
    }
)

GET_PROPERTY_DETAILS_OUTPUT = object_schema(
    {
        "property": record_field("The full details of the property, or null if not found.", nullable=True),
        "message": string_field("A summary message about the result.", min_length=1),
    }
)


async def get_property_details(
    store: PropertyStore, identifier: str, identifierType: str
) -> Dict[str, Any]:
    if identifierType == "id":
        found = await store.get_by_id(identifier)
    else:
        found = await store.get_by_name(identifier)

    if found is None:
        return {
            "property": None,
            "message": f"Sorry, I couldn't find a property with {identifierType} \"{identifier}\".",
        }
    return {
        "property": found.to_dict(),
        "message": (
            f'Details for property "{found.name}" (ID: {found.id}): '
            f"Address: {found.address}, Type: {_type_label(found)}, Status: {found.status}."
        ),
    }


# ----------------------------
# updatePropertyDetails
# ----------------------------

UPDATE_PROPERTY_DETAILS_INPUT = object_schema(
    {
        "propertyId": string_field("The ID of the property to update. This is mandatory.", min_length=1),
        "name": string_field("New name for the property.", required=False, min_length=1),
        "address": string_field("New full address for the property.", required=False, min_length=1),
        "propertyType": string_field("New property type, e.g. 'House', 'Shop'.", required=False),
        "isRented": boolean_field("Whether the property is currently rented out.", required=False),
        "isSoldOnInstallment": boolean_field(
            "Whether the property has been sold on installments.", required=False
        ),
    }
)

UPDATE_PROPERTY_DETAILS_OUTPUT = object_schema(
    {
        "updatedProperty": record_field(
            "The updated property details, or null if nothing was updated.", nullable=True
        ),
        "message": string_field("Confirmation or error message.", min_length=1),
    }
)

NO_UPDATES_MESSAGE = "No updates provided. Please specify what you want to change."


async def update_property_details(store: PropertyStore, propertyId: str, **updates: Any) -> Dict[str, Any]:
    if not updates:
        return {"updatedProperty": None, "message": NO_UPDATES_MESSAGE}

    updated = await store.update(propertyId, updates)
    if updated is None:
        return {
            "updatedProperty": None,
            "message": f"Failed to update property ID {propertyId}. Please ensure the ID is correct.",
        }
    return {
        "updatedProperty": updated.to_dict(),
        "message": (
            f"Successfully updated property ID {updated.id}. "
            f'Name: "{updated.name}", Address: {updated.address}, Type: {_type_label(updated)}.'
        ),
    }


def build_property_tools(store: PropertyStore) -> List[ToolDefinition]:
    return [
        ToolDefinition(
            name="listProperties",
            description=(
                "Retrieves a list of properties from the system. Can be filtered by status "
                '(e.g., "available", "sold", "rented"), property type (e.g., "house", "plot", '
                '"apartment", "file"), or location.'
            ),
            input_schema=LIST_PROPERTIES_INPUT,
            output_schema=LIST_PROPERTIES_OUTPUT,
            handler=partial(list_properties, store),
        ),
        ToolDefinition(
            name="addProperty",
            description=(
                "Adds a new property to the system. Requires property name and address. "
                "Optionally, property type can be specified."
            ),
            input_schema=ADD_PROPERTY_INPUT,
            output_schema=ADD_PROPERTY_OUTPUT,
            handler=partial(add_property, store),
        ),
        ToolDefinition(
            name="getPropertyDetails",
            description=(
                "Retrieves detailed information for a specific property using its ID or name. "
                "Prefer using ID if known."
            ),
            input_schema=GET_PROPERTY_DETAILS_INPUT,
            output_schema=GET_PROPERTY_DETAILS_OUTPUT,
            handler=partial(get_property_details, store),
        ),
        ToolDefinition(
            name="updatePropertyDetails",
            description=(
                "Updates specific details (name, address, type, rented status, installment sold "
                "status) of an existing property identified by its ID."
            ),
            input_schema=UPDATE_PROPERTY_DETAILS_INPUT,
            output_schema=UPDATE_PROPERTY_DETAILS_OUTPUT,
            handler=partial(update_property_details, store),
        ),
    ]
