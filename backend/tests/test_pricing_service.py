"""
Test per la risoluzione del listino e le tabelle prezzi.
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import inspect

from dental_lab.core.exceptions import NotFoundError
from dental_lab.models import Base, Client, LabService, PriceTable, PriceTableEntry
from dental_lab.schemas.catalog import PriceTableCreate, PriceTableEntryWrite, PriceTableUpdate
from dental_lab.services.pricing_service import (
    catalog_service,
    index_price_list,
    replace_overrides,
    resolve_prices,
    set_override,
)


def make_service(name, material, price):
    return LabService(id=uuid.uuid4(), name=name, material=material, standard_price=Decimal(price))


def make_table(overrides):
    return PriceTable(
        id=uuid.uuid4(),
        name="Tabella",
        entries=[PriceTableEntry(service_id=sid, custom_price=Decimal(p)) for sid, p in overrides.items()],
    )


@pytest.fixture
def services():
    return [
        make_service("Corona", "Zirconia", "80.00"),
        make_service("Faccetta", "Ceramica", "120.00"),
        make_service("Intarsio", "Ceramica", "40.00"),
    ]


class TestResolvePrices:
    """Test per la risoluzione del listino."""

    def test_client_without_table_sees_standard_prices(self, services):
        """Test cliente senza tabella vede i prezzi standard."""
        client = Client(id=uuid.uuid4(), name="Studio", price_table_id=None)

        prices = index_price_list(resolve_prices(client, services, []))

        for service in services:
            assert prices[service.id].display_price == service.standard_price
            assert prices[service.id].has_custom_price is False

    def test_override_replaces_standard_price(self, services):
        """Test prezzo personalizzato al posto di quello standard."""
        corona = services[0]
        table = make_table({corona.id: "70.00"})
        client = Client(id=uuid.uuid4(), name="Studio", price_table_id=table.id)

        prices = index_price_list(resolve_prices(client, services, [table]))

        assert prices[corona.id].display_price == Decimal("70.00")
        assert prices[corona.id].standard_price == Decimal("80.00")
        assert prices[corona.id].has_custom_price is True
        assert prices[services[1].id].display_price == Decimal("120.00")

    def test_dangling_price_table_falls_back_to_standard(self, services):
        """Test tabella inesistente torna al listino standard."""
        other = make_table({services[0].id: "10.00"})
        client = Client(id=uuid.uuid4(), name="Studio", price_table_id=uuid.uuid4())

        prices = index_price_list(resolve_prices(client, services, [other]))

        assert prices[services[0].id].display_price == Decimal("80.00")

    def test_entries_for_removed_services_are_ignored(self, services):
        """Test voci di lavorazioni rimosse ignorate."""
        table = make_table({uuid.uuid4(): "15.00", services[2].id: "35.00"})
        client = Client(id=uuid.uuid4(), name="Studio", price_table_id=table.id)

        prices = index_price_list(resolve_prices(client, services, [table]))

        assert set(prices) == {s.id for s in services}
        assert prices[services[2].id].display_price == Decimal("35.00")

    def test_grouped_by_material(self, services):
        """Test raggruppamento per materiale e nome."""
        groups = resolve_prices(None, services, [])

        assert [g.material for g in groups] == ["Ceramica", "Zirconia"]
        assert [s.name for s in groups[0].services] == ["Faccetta", "Intarsio"]

    def test_each_material_appears_once(self):
        """Test materiali diversi solo per maiuscole non spezzati in gruppi alternati."""
        catalog = [
            make_service("a", "Zirconia", "10.00"),
            make_service("b", "zirconia", "10.00"),
            make_service("c", "Zirconia", "10.00"),
        ]

        groups = resolve_prices(None, catalog, [])

        assert [(g.material, [s.name for s in g.services]) for g in groups] == [
            ("Zirconia", ["a", "c"]),
            ("zirconia", ["b"]),
        ]


class TestOverrides:
    """Test per la gestione dei prezzi personalizzati."""

    def test_set_override_adds_and_updates(self):
        """Test inserimento e aggiornamento di un prezzo personalizzato."""
        service_id = uuid.uuid4()
        table = make_table({})

        set_override(table, service_id, Decimal("55"))
        set_override(table, service_id, Decimal("60.5"))

        assert len(table.entries) == 1
        assert table.overrides[service_id] == Decimal("60.50")

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-5")])
    def test_non_positive_price_removes_override(self, price):
        """Test prezzo nullo o negativo rimuove la personalizzazione."""
        service_id = uuid.uuid4()
        table = make_table({service_id: "55.00"})

        set_override(table, service_id, price)

        assert table.overrides == {}

    def test_replace_overrides(self):
        """Test sostituzione completa delle voci della tabella."""
        keep, drop, new = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        table = make_table({keep: "10.00", drop: "20.00"})
        kept_entry = table.entries[0]

        replace_overrides(
            table,
            [
                PriceTableEntryWrite(service_id=keep, custom_price=Decimal("12")),
                PriceTableEntryWrite(service_id=new, custom_price=Decimal("30")),
            ],
        )

        assert table.overrides == {keep: Decimal("12.00"), new: Decimal("30.00")}
        assert kept_entry in table.entries


class TestCatalogService:
    """Test per il service del catalogo."""

    @pytest.mark.asyncio
    async def test_client_price_list(self, db, tenant_id, catalog, vip_client):
        """Test listino del cliente con tabella prezzi."""
        price_list = await catalog_service.client_price_list(db, tenant_id, vip_client.id)
        prices = index_price_list(price_list.groups)

        assert price_list.price_table_id == vip_client.price_table_id
        assert prices[catalog["A"].id].display_price == Decimal("70.00")
        assert prices[catalog["B"].id].display_price == Decimal("40.00")

    @pytest.mark.asyncio
    async def test_client_price_list_other_tenant(self, db, catalog, vip_client):
        """Test cliente di un altro laboratorio non trovato."""
        with pytest.raises(NotFoundError):
            await catalog_service.client_price_list(db, "altro-lab", vip_client.id)

    @pytest.mark.asyncio
    async def test_price_table_lifecycle(self, db, tenant_id, catalog):
        """Test creazione, modifica ed eliminazione di una tabella prezzi."""
        table = await catalog_service.create_price_table(
            db,
            tenant_id,
            PriceTableCreate(
                name="Listino B",
                entries=[
                    PriceTableEntryWrite(service_id=catalog["A"].id, custom_price=Decimal("75")),
                    PriceTableEntryWrite(service_id=catalog["B"].id, custom_price=Decimal("0")),
                ],
            ),
        )
        assert table.overrides == {catalog["A"].id: Decimal("75.00")}

        table = await catalog_service.update_price_table(
            db,
            tenant_id,
            table.id,
            PriceTableUpdate(entries=[PriceTableEntryWrite(service_id=catalog["C"].id, custom_price=Decimal("45"))]),
        )
        assert table.overrides == {catalog["C"].id: Decimal("45.00")}

        table = await catalog_service.set_price_override(
            db, tenant_id, table.id, PriceTableEntryWrite(service_id=catalog["C"].id, custom_price=Decimal("-1"))
        )
        assert table.overrides == {}


class TestMappings:
    """Test per le relazioni tra i modelli del catalogo."""

    def test_no_noload_relationships(self):
        """Test nessuna relazione caricata con la strategia deprecata noload."""
        for mapper in Base.registry.mappers:
            for relationship in mapper.relationships:
                assert relationship.lazy != "noload", f"{mapper.class_.__name__}.{relationship.key}"

    def test_client_has_no_price_table_relationship(self):
        """Test cliente collegato alla tabella prezzi solo tramite price_table_id."""
        assert "price_table" not in inspect(Client).relationships
        assert "clients" not in inspect(PriceTable).relationships
