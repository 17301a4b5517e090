"""
test_model_persistence.py
~~~~~~~~~~~~~~~~~~~~~~~~~~

Unit tests for the SQLite network store.
"""

import os
import sqlite3

import numpy as np
import pytest

from neuralnet import Network
from neuralnet.model_persistence import (
    save_network,
    load_network,
    get_network_document,
    list_saved_networks,
    delete_network,
    get_network_metadata,
    delete_old_networks,
    ModelDatabase
)
from neuralnet.training import document_from_sets


@pytest.fixture
def temp_db_dir(tmp_path):
    """Create a temporary directory for database storage."""
    db_dir = tmp_path / "test_models"
    db_dir.mkdir()
    return str(db_dir)


@pytest.fixture
def simple_network():
    """Create a 3-4-2 network for testing."""
    return Network(3, 4, 2, learning_rate=0.01, epochs=20, rng=0)


@pytest.fixture
def trained_network(simple_network):
    """Create a network with some training applied."""
    simple_network.train(document_from_sets(["0.1,0.2,0.3;1,0", "0.3,0.2,0.1;0,1"]), 'str')
    return simple_network


def _age_network(db_dir, network_id, modifier):
    """Move the created_at of a stored network into the past."""
    conn = sqlite3.connect(os.path.join(db_dir, "networks.db"))
    conn.execute(
        "UPDATE networks SET created_at = datetime('now', ?) WHERE network_id = ?",
        (modifier, network_id)
    )
    conn.commit()
    conn.close()


@pytest.mark.unit
class TestModelPersistence:
    """Test basic model persistence operations."""

    def test_save_network_creates_database(self, simple_network, temp_db_dir):
        """Test that saving a network creates the database file."""
        success = save_network(
            simple_network,
            "test_network_1",
            model_dir=temp_db_dir,
            trained=False
        )

        assert success is True
        assert os.path.exists(f"{temp_db_dir}/networks.db")

    def test_save_creates_missing_directory(self, simple_network, tmp_path):
        """Test that the model directory is created on demand."""
        model_dir = str(tmp_path / "nested" / "models")
        assert save_network(simple_network, "net", model_dir=model_dir) is True
        assert os.path.isdir(model_dir)

    def test_save_network_with_metadata(self, trained_network, temp_db_dir):
        """Test that network metadata is saved correctly."""
        network_id = "trained_network_1"

        success = save_network(
            trained_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            error=0.125
        )

        assert success is True

        metadata = get_network_metadata(network_id, temp_db_dir)
        assert metadata is not None
        assert metadata['network_id'] == network_id
        assert metadata['trained'] is True
        assert metadata['error'] == 0.125
        assert metadata['architecture'] == [3, 4, 2]
        assert metadata['learning_rate'] == 0.01
        assert metadata['epochs'] == 20

    @pytest.mark.parametrize("error", [-0.5, float('nan'), float('inf')])
    def test_save_rejects_invalid_error(self, simple_network, temp_db_dir, error):
        """Test that a negative or non-finite error is refused."""
        with pytest.raises(ValueError):
            save_network(simple_network, "bad", model_dir=temp_db_dir, error=error)
        assert get_network_metadata("bad", temp_db_dir) is None

    @pytest.mark.parametrize("network_id", ["", None])
    def test_invalid_network_id(self, simple_network, temp_db_dir, network_id):
        """Test that an empty id is refused by every operation."""
        assert save_network(simple_network, network_id, model_dir=temp_db_dir) is False
        assert load_network(network_id, temp_db_dir) is None
        assert delete_network(network_id, temp_db_dir) is False

    def test_load_network_returns_network(self, simple_network, temp_db_dir):
        """Test that loading a network returns a valid Network object."""
        network_id = "test_network_2"

        save_network(simple_network, network_id, model_dir=temp_db_dir)
        loaded_network = load_network(network_id, temp_db_dir)

        assert loaded_network is not None
        assert isinstance(loaded_network, Network)
        assert loaded_network.sizes == simple_network.sizes

    def test_load_nonexistent_network(self, temp_db_dir):
        """Test that loading a non-existent network returns None."""
        assert load_network("nonexistent", temp_db_dir) is None

    def test_load_preserves_weights(self, trained_network, temp_db_dir):
        """Test that saved weights are preserved exactly after loading."""
        network_id = "test_network_3"

        save_network(trained_network, network_id, model_dir=temp_db_dir)
        loaded_network = load_network(network_id, temp_db_dir)

        for original_w, loaded_w in zip(trained_network.weights, loaded_network.weights):
            assert np.array_equal(original_w, loaded_w)

    def test_load_corrupt_document(self, simple_network, temp_db_dir):
        """Test that a corrupt stored document loads as None."""
        save_network(simple_network, "corrupt", model_dir=temp_db_dir)

        conn = sqlite3.connect(os.path.join(temp_db_dir, "networks.db"))
        conn.execute(
            "UPDATE networks SET document = '<NETWORK/>' WHERE network_id = 'corrupt'"
        )
        conn.commit()
        conn.close()

        assert load_network("corrupt", temp_db_dir) is None

    def test_get_network_document(self, simple_network, temp_db_dir):
        """Test that the stored document is returned verbatim."""
        save_network(simple_network, "doc", model_dir=temp_db_dir)

        document = get_network_document("doc", temp_db_dir)
        assert document.lstrip().startswith("<?xml")
        assert 'INPUTS="3"' in document
        assert get_network_document("missing", temp_db_dir) is None

    def test_list_saved_networks_empty(self, temp_db_dir):
        """Test listing networks when database is empty."""
        assert list_saved_networks(temp_db_dir) == []

    def test_list_saved_networks(self, simple_network, temp_db_dir):
        """Test that listing networks returns every saved network."""
        save_network(simple_network, "net1", model_dir=temp_db_dir, trained=True, error=0.1)
        save_network(simple_network, "net2", model_dir=temp_db_dir, trained=False)

        networks = list_saved_networks(temp_db_dir)

        assert len(networks) == 2
        assert {net['network_id'] for net in networks} == {"net1", "net2"}

    def test_list_saved_networks_includes_metadata(self, simple_network, temp_db_dir):
        """Test that listed networks include all expected metadata fields."""
        network_id = "metadata_test"

        save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            error=0.75
        )

        network = list_saved_networks(temp_db_dir)[0]

        assert network['network_id'] == network_id
        assert network['architecture'] == [3, 4, 2]
        assert network['trained'] is True
        assert network['error'] == 0.75
        assert network['synapses'] == [12, 8]
        assert 'created_at' in network
        assert 'updated_at' in network

    def test_delete_network_success(self, simple_network, temp_db_dir):
        """Test successful network deletion."""
        network_id = "delete_test"

        save_network(simple_network, network_id, model_dir=temp_db_dir)
        assert load_network(network_id, temp_db_dir) is not None

        assert delete_network(network_id, temp_db_dir) is True
        assert load_network(network_id, temp_db_dir) is None

    def test_delete_nonexistent_network(self, temp_db_dir):
        """Test that deleting a non-existent network returns False."""
        ModelDatabase(db_path=f'{temp_db_dir}/networks.db')

        assert delete_network("nonexistent", temp_db_dir) is False

    def test_update_network(self, simple_network, temp_db_dir):
        """Test that saving a network with the same ID updates it."""
        network_id = "update_test"

        save_network(simple_network, network_id, model_dir=temp_db_dir, trained=False)
        _age_network(temp_db_dir, network_id, '-1 hour')
        metadata1 = get_network_metadata(network_id, temp_db_dir)
        assert metadata1['trained'] is False
        assert metadata1['error'] is None

        save_network(
            simple_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            error=0.05
        )

        metadata2 = get_network_metadata(network_id, temp_db_dir)
        assert metadata2['trained'] is True
        assert metadata2['error'] == 0.05
        # Creation time survives the update
        assert metadata2['created_at'] == metadata1['created_at']

        assert len(list_saved_networks(temp_db_dir)) == 1


@pytest.mark.integration
class TestPersistenceIntegration:
    """Integration tests for model persistence."""

    def test_save_load_train_cycle(self, simple_network, temp_db_dir):
        """Test complete cycle: save, load, train, save again."""
        network_id = "cycle_test"

        save_network(simple_network, network_id, model_dir=temp_db_dir, trained=False)
        loaded_network = load_network(network_id, temp_db_dir)

        errors = loaded_network.train(
            document_from_sets(["0.5,0.5,0.5;1,1"]), 'str'
        )
        save_network(
            loaded_network,
            network_id,
            model_dir=temp_db_dir,
            trained=True,
            error=errors[-1]
        )

        final_network = load_network(network_id, temp_db_dir)
        metadata = get_network_metadata(network_id, temp_db_dir)

        assert final_network is not None
        assert metadata['trained'] is True
        assert metadata['error'] == pytest.approx(errors[-1])
        for trained_w, final_w in zip(loaded_network.weights, final_network.weights):
            assert np.array_equal(trained_w, final_w)

    def test_multiple_networks_coexist(self, temp_db_dir):
        """Test that multiple networks can coexist in the database."""
        networks_to_create = [
            ([2, 2, 1], "adder"),
            ([3, 4, 2], "simple_network"),
            ([10, 20, 5], "wide_network")
        ]

        for sizes, network_id in networks_to_create:
            net = Network(*sizes, learning_rate=0.01, epochs=10)
            save_network(net, network_id, model_dir=temp_db_dir)

        assert len(list_saved_networks(temp_db_dir)) == len(networks_to_create)

        for sizes, network_id in networks_to_create:
            loaded = load_network(network_id, temp_db_dir)
            assert loaded is not None
            assert loaded.sizes == sizes

    def test_repeated_operations(self, simple_network, temp_db_dir):
        """Test that the store handles a sequence of transactions."""
        network_ids = [f"network_{i}" for i in range(5)]

        for network_id in network_ids:
            save_network(simple_network, network_id, model_dir=temp_db_dir)

        loaded_networks = [load_network(n, temp_db_dir) for n in network_ids]
        assert all(net is not None for net in loaded_networks)

        for network_id in network_ids:
            assert delete_network(network_id, temp_db_dir) is True

        assert list_saved_networks(temp_db_dir) == []


class TestDeleteOldNetworks:
    """Tests for cleanup of old networks."""

    def test_delete_old_networks_basic(self, simple_network, temp_db_dir):
        """Test that a network older than the threshold is deleted."""
        save_network(simple_network, "old", model_dir=temp_db_dir)
        _age_network(temp_db_dir, "old", '-3 days')

        assert delete_old_networks(days=2, model_dir=temp_db_dir) == 1
        assert load_network("old", temp_db_dir) is None

    def test_delete_old_networks_preserves_recent(self, simple_network, temp_db_dir):
        """Test that recent networks are not deleted."""
        save_network(simple_network, "recent", model_dir=temp_db_dir)

        assert delete_old_networks(days=2, model_dir=temp_db_dir) == 0
        assert load_network("recent", temp_db_dir) is not None

    def test_delete_old_networks_mixed_ages(self, simple_network, temp_db_dir):
        """Test with a mix of old and recent networks."""
        old_ids = ["old_1", "old_2"]
        recent_ids = ["recent_1", "recent_2"]

        for network_id in old_ids + recent_ids:
            save_network(simple_network, network_id, model_dir=temp_db_dir)
        for network_id in old_ids:
            _age_network(temp_db_dir, network_id, '-3 days')

        assert delete_old_networks(days=2, model_dir=temp_db_dir) == len(old_ids)
        for network_id in old_ids:
            assert load_network(network_id, temp_db_dir) is None
        for network_id in recent_ids:
            assert load_network(network_id, temp_db_dir) is not None

    def test_delete_old_networks_custom_days(self, simple_network, temp_db_dir):
        """Test delete_old_networks with different day thresholds."""
        save_network(simple_network, "five_days", model_dir=temp_db_dir)
        _age_network(temp_db_dir, "five_days", '-5 days')

        assert delete_old_networks(days=7, model_dir=temp_db_dir) == 0
        assert load_network("five_days", temp_db_dir) is not None

        assert delete_old_networks(days=3, model_dir=temp_db_dir) == 1
        assert load_network("five_days", temp_db_dir) is None

    def test_delete_old_networks_empty_db(self, temp_db_dir):
        """Test delete_old_networks on empty database."""
        assert delete_old_networks(days=2, model_dir=temp_db_dir) == 0

    def test_delete_old_networks_negative_days(self, temp_db_dir):
        """Test that negative days raises ValueError."""
        with pytest.raises(ValueError) as exc_info:
            delete_old_networks(days=-1, model_dir=temp_db_dir)
        assert "non-negative" in str(exc_info.value)

    def test_delete_old_networks_zero_days(self, simple_network, temp_db_dir):
        """Test that days=0 deletes anything created before now."""
        save_network(simple_network, "hour_old", model_dir=temp_db_dir)
        _age_network(temp_db_dir, "hour_old", '-1 hour')

        assert delete_old_networks(days=0, model_dir=temp_db_dir) == 1
        assert load_network("hour_old", temp_db_dir) is None

    def test_model_database_delete_old_networks_method(self, temp_db_dir):
        """Test ModelDatabase.delete_old_networks_from_db directly."""
        db = ModelDatabase(db_path=os.path.join(temp_db_dir, "networks.db"))
        net = Network(2, 2, 1, learning_rate=0.005, epochs=10)

        db.save_network_to_db(net, "adder", trained=False)
        _age_network(temp_db_dir, "adder", '-3 days')

        assert db.delete_old_networks_from_db(days=2) == 1
        assert db.load_network_from_db("adder") is None
