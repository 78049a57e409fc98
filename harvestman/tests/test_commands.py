"""
Tests for the match_harvests management command and the admin action.
"""

from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from django.contrib.admin.sites import site
from django.core.management import CommandError, call_command

from harvestman.exceptions import HarvestError
from harvestman.models import Harvest, PreorderStatus


class TestMatchHarvestsCommand:
    def test_sweeps_matchable_harvests(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        preorder = make_preorder("2")
        out = StringIO()

        call_command("match_harvests", stdout=out)

        preorder.refresh_from_db()
        assert preorder.status == PreorderStatus.RESERVED
        assert f"Harvest {harvest.pk}: 1 preorders reserved" in out.getvalue()

    def test_explicit_ids(self, make_harvest, make_preorder):
        make_harvest("10")
        target = make_harvest("10", sku="BEANS-001")
        preorder = make_preorder("2", sku="BEANS-001")

        call_command("match_harvests", str(target.pk), stdout=StringIO())

        preorder.refresh_from_db()
        assert preorder.harvest == target

    def test_nothing_to_match(self, db):
        out = StringIO()

        call_command("match_harvests", stdout=out)

        assert "No harvests to match." in out.getvalue()

    def test_failure_exits_with_error(self, make_harvest):
        harvest = make_harvest("10", published=False)
        err = StringIO()

        with pytest.raises(CommandError):
            call_command("match_harvests", str(harvest.pk), stdout=StringIO(), stderr=err)

        assert "HARVEST_NOT_PUBLISHED" in err.getvalue()


class TestHarvestAdminAction:
    def test_run_matching_action(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        preorder = make_preorder("2")
        model_admin = site._registry[Harvest]

        with patch.object(model_admin, "message_user") as message_user:
            model_admin.run_matching(MagicMock(), Harvest.objects.filter(pk=harvest.pk))

        preorder.refresh_from_db()
        assert preorder.status == PreorderStatus.RESERVED
        assert "1 preorders reserved" in message_user.call_args[0][1]

    def test_run_matching_action_reports_errors(self, make_harvest):
        harvest = make_harvest("10")
        model_admin = site._registry[Harvest]

        with patch(
            "harvestman.services.matching.HarvestMatching.run",
            side_effect=HarvestError("CONCURRENT_MODIFICATION", harvest_id=harvest.pk),
        ):
            with patch.object(model_admin, "message_user") as message_user:
                model_admin.run_matching(MagicMock(), Harvest.objects.filter(pk=harvest.pk))

        assert "CONCURRENT_MODIFICATION" in message_user.call_args[0][1]
