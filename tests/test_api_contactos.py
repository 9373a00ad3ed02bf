"""
Tests de integración de contrapartes: /suppliers, /clients, /contacts.

Identidad = RUT canónico. Cubre creación con RUT en cualquier formato,
conflictos por rol duplicado, promoción en ambos sentidos, reactivación
y la regla que impide dejar sin roles a quien tiene compras vigentes.
"""
import pytest

pytestmark = pytest.mark.integration

API = "/api/v1"


class TestProveedores:
    """Tests para /suppliers"""

    def test_crear_normaliza_rut(self, client):
        response = client.post(f"{API}/suppliers", json={
            "rut": "12.345.678-5", "name": "  Distribuidora Andes  ", "phone": "+56 9 1234 5678",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["rut"] == "123456785"
        assert data["name"] == "Distribuidora Andes"
        assert data["phone"] == "56912345678"
        assert data["isCustomer"] is False
        assert data["active"] is True

    def test_rut_con_dv_incorrecto_es_422(self, client):
        response = client.post(f"{API}/suppliers", json={"rut": "12.345.678-9", "name": "X"})
        assert response.status_code == 422
        assert "rut" in response.json()["detail"]["errors"]

    def test_rut_duplicado_es_409(self, client, proveedor):
        response = client.post(f"{API}/suppliers", json={"rut": "12345678-5", "name": "Otro"})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "conflict"

    def test_actualizar_no_toca_rut(self, client, proveedor):
        response = client.put(f"{API}/suppliers/{proveedor.id}", json={"name": "Andes SpA"})
        assert response.status_code == 200
        assert response.json()["name"] == "Andes SpA"
        assert response.json()["rut"] == "123456785"

    def test_busqueda(self, client, proveedor):
        assert len(client.get(f"{API}/suppliers", params={"term": "ANDES"}).json()) == 1
        assert len(client.get(f"{API}/suppliers", params={"term": "12.345"}).json()) == 1
        assert client.get(f"{API}/suppliers", params={"term": "sur"}).json() == []

    def test_metricas(self, client, proveedor, insumos):
        harina, _ = insumos
        for cantidad in (1, 3):
            client.post(f"{API}/purchases", json={
                "date": "2024-01-0%d" % cantidad,
                "counterpartyId": proveedor.id,
                "items": [{"item": harina.id, "quantity": cantidad, "unitPrice": 1000}],
            })
        data = client.get(f"{API}/suppliers/{proveedor.id}/metrics").json()
        assert data["totalPurchases"] == 2
        assert data["totalAmount"] == 1190 + 3570
        assert data["averageAmount"] == 2380
        assert data["firstPurchaseDate"] == "2024-01-01"
        assert data["lastPurchaseDate"] == "2024-01-03"

    def test_metricas_proveedor_inexistente(self, client):
        assert client.get(f"{API}/suppliers/999/metrics").status_code == 404


class TestPromocion:
    """Tests para /contacts/{id}/add-*-role"""

    def test_cliente_a_proveedor(self, client, cliente):
        response = client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role")
        assert response.status_code == 200
        proveedor = response.json()
        assert proveedor["rut"] == cliente.rut
        assert proveedor["name"] == cliente.nombre
        assert proveedor["phone"] == cliente.telefono
        assert proveedor["isCustomer"] is True
        assert proveedor["customerId"] == cliente.id

        cliente_actual = client.get(f"{API}/clients/{cliente.id}").json()
        assert cliente_actual["isSupplier"] is True
        assert cliente_actual["supplierId"] == proveedor["id"]

    def test_promover_dos_veces_es_409(self, client, cliente):
        client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role")
        response = client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "conflict"

    def test_proveedor_a_cliente(self, client, proveedor):
        response = client.patch(f"{API}/contacts/{proveedor.id}/add-customer-role")
        assert response.status_code == 200
        assert response.json()["isSupplier"] is True
        assert response.json()["supplierId"] == proveedor.id

    def test_promover_registro_inexistente(self, client):
        assert client.patch(f"{API}/contacts/999/add-supplier-role").status_code == 404

    def test_contacto_unificado(self, client, cliente):
        client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role")
        contactos = client.get(f"{API}/contacts").json()
        assert len(contactos) == 1
        assert set(contactos[0]["roles"]) == {"supplier", "customer"}

        por_rut = client.get(f"{API}/contacts/by-rut/11.111.111-1").json()
        assert por_rut["customerId"] == cliente.id
        assert por_rut["supplierId"] is not None


class TestQuitarRol:
    """Tests para /contacts/{id}/remove-*-role"""

    def test_quitar_rol_con_otro_rol_activo(self, client, cliente):
        proveedor = client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role").json()
        response = client.patch(f"{API}/contacts/{proveedor['id']}/remove-supplier-role")
        assert response.status_code == 200
        assert response.json()["active"] is False
        assert client.get(f"{API}/suppliers").json() == []

    def test_reactivacion_conserva_registro(self, client, cliente):
        """Test: volver a promover reactiva el mismo registro, sin duplicar"""
        proveedor = client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role").json()
        client.patch(f"{API}/contacts/{proveedor['id']}/remove-supplier-role")
        response = client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role")
        assert response.status_code == 200
        assert response.json()["id"] == proveedor["id"]
        assert response.json()["active"] is True

    def test_unico_rol_con_compras_es_409(self, client, proveedor, insumos):
        harina, _ = insumos
        client.post(f"{API}/purchases", json={
            "counterpartyId": proveedor.id,
            "items": [{"item": harina.id, "quantity": 1, "unitPrice": 1000}],
        })
        response = client.patch(f"{API}/contacts/{proveedor.id}/remove-supplier-role")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_state"

    def test_unico_rol_sin_historial(self, client, proveedor):
        response = client.patch(f"{API}/contacts/{proveedor.id}/remove-supplier-role")
        assert response.status_code == 200
        assert client.get(f"{API}/contacts/by-rut/{proveedor.rut}").status_code == 404

    def test_quitar_rol_ya_quitado_es_409(self, client, proveedor):
        client.patch(f"{API}/contacts/{proveedor.id}/remove-supplier-role")
        response = client.patch(f"{API}/contacts/{proveedor.id}/remove-supplier-role")
        assert response.status_code == 409

    def test_compra_con_proveedor_inactivo_es_422(self, client, cliente, insumos):
        harina, _ = insumos
        proveedor = client.patch(f"{API}/contacts/{cliente.id}/add-supplier-role").json()
        client.patch(f"{API}/contacts/{proveedor['id']}/remove-supplier-role")
        response = client.post(f"{API}/purchases", json={
            "counterpartyId": proveedor["id"],
            "items": [{"item": harina.id, "quantity": 1, "unitPrice": 1000}],
        })
        assert response.status_code == 422
        assert "counterparty" in response.json()["detail"]["errors"]
