"""
Unit tests for StoreController against an in-memory backend.
"""

import asyncio

import pytest
import pytest_asyncio

from concurso.auth.local import LocalIdentityProvider
from concurso.core.models import FolderFields, QuestionFields, QuestionType
from concurso.store.controller import StoreController
from concurso.store.reducer import AddFolder, ResetAll


def folder_record(folder_id, user_id="u1", name="Direito", created_at="2024-03-01T12:00:00+00:00"):
    return {"id": folder_id, "name": name, "description": None, "user_id": user_id, "created_at": created_at}


def question_record(question_id, folder_id, user_id="u1"):
    return {
        "id": question_id,
        "folder_id": folder_id,
        "user_id": user_id,
        "title": "Capital?",
        "type": "multiple",
        "options": ["Rio", "Brasilia"],
        "correct_answer": "B",
        "correct_boolean": None,
        "explanation": None,
        "created_at": "2024-03-01T12:00:00+00:00",
        "updated_at": "2024-03-01T12:00:00+00:00",
    }


def mc_fields(folder_id, title="Qual a capital?", options=("Rio", "Brasilia"), answer="B"):
    return QuestionFields(folder_id=folder_id, title=title, options=options, correct_answer=answer)


@pytest.fixture
def controller(memory_backend):
    return StoreController(memory_backend)


@pytest_asyncio.fixture
async def signed_in(controller, memory_backend):
    memory_backend.seed_folder(folder_record("f1"))
    memory_backend.seed_question(question_record("q1", "f1"))
    await controller.on_session_start("u1")
    return controller


class TestSessionLoad:
    @pytest.mark.asyncio
    async def test_loads_only_own_records_newest_first(self, controller, memory_backend):
        memory_backend.seed_folder(folder_record("old", created_at="2024-01-01T00:00:00+00:00"))
        memory_backend.seed_folder(folder_record("new", created_at="2024-02-01T00:00:00+00:00"))
        memory_backend.seed_folder(folder_record("theirs", user_id="u2"))
        memory_backend.seed_question(question_record("q1", "new"))
        memory_backend.seed_question(question_record("q2", "theirs", user_id="u2"))

        loaded = await controller.on_session_start("u1")

        assert loaded is True
        assert [f.id for f in controller.state.folders] == ["new", "old"]
        assert [q.id for q in controller.state.questions] == ["q1"]

    @pytest.mark.asyncio
    async def test_drops_foreign_records_returned_by_backend(self, controller, monkeypatch):
        async def leaky_list(user_id):
            return [folder_record("mine"), folder_record("leak", user_id="u2")]

        monkeypatch.setattr(controller.backend, "list_folders_by_user", leaky_list)

        await controller.on_session_start("u1")

        assert [f.id for f in controller.state.folders] == ["mine"]

    @pytest.mark.asyncio
    async def test_backend_failure_leaves_empty_state(self, controller, memory_backend):
        memory_backend.seed_folder(folder_record("f1"))
        memory_backend.fail_on.add("list_questions_by_user")

        loaded = await controller.on_session_start("u1")

        assert loaded is False
        assert controller.state.folders == ()

    @pytest.mark.asyncio
    async def test_previous_user_cleared_before_first_await(self, signed_in, memory_backend):
        memory_backend.gates["list_folders_by_user"] = asyncio.Event()
        seen = []
        signed_in.subscribe(lambda state: seen.append(len(state.folders)))

        task = asyncio.create_task(signed_in.on_session_start("u2"))
        await asyncio.sleep(0)

        assert signed_in.state.folders == ()
        memory_backend.gates["list_folders_by_user"].set()
        await task
        assert seen[0] == 0

    @pytest.mark.asyncio
    async def test_stale_load_discarded(self, controller, memory_backend):
        memory_backend.seed_folder(folder_record("f1"))
        memory_backend.gates["list_folders_by_user"] = asyncio.Event()

        task = asyncio.create_task(controller.on_session_start("u1"))
        await asyncio.sleep(0)
        controller.on_session_end()
        memory_backend.gates["list_folders_by_user"].set()

        assert await task is False
        assert controller.state.folders == ()

    @pytest.mark.asyncio
    async def test_session_end_resets(self, signed_in):
        signed_in.on_session_end()

        assert signed_in.state.folders == ()
        assert signed_in.user_id is None


class TestFolderOperations:
    @pytest.mark.asyncio
    async def test_requires_user(self, controller, memory_backend):
        result = await controller.create_folder(FolderFields(name="Direito"))

        assert result.success is False
        assert result.error_kind == "auth"
        assert memory_backend.calls == []

    @pytest.mark.asyncio
    async def test_create(self, signed_in):
        result = await signed_in.create_folder(FolderFields(name="  Portugues ", description="Gramatica"))

        assert result.success is True
        assert result.record.name == "Portugues"
        assert result.record.user_id == "u1"
        assert signed_in.state.folders[-1] == result.record

    @pytest.mark.asyncio
    async def test_create_invalid_never_reaches_backend(self, signed_in, memory_backend):
        before = signed_in.state
        memory_backend.calls.clear()

        result = await signed_in.create_folder(FolderFields(name="   "))

        assert result.success is False
        assert result.error_kind == "validation"
        assert "create_folder" not in memory_backend.calls
        assert signed_in.state is before

    @pytest.mark.asyncio
    async def test_update(self, signed_in):
        result = await signed_in.update_folder("f1", FolderFields(name="Direito Civil"))

        assert result.success is True
        assert signed_in.folder("f1").name == "Direito Civil"

    @pytest.mark.asyncio
    async def test_update_unknown_folder(self, signed_in, memory_backend):
        memory_backend.calls.clear()

        result = await signed_in.update_folder("missing", FolderFields(name="x"))

        assert result.success is False
        assert memory_backend.calls == []

    @pytest.mark.asyncio
    async def test_backend_failure_keeps_state(self, signed_in, memory_backend):
        memory_backend.fail_on.add("update_folder")
        before = signed_in.state

        result = await signed_in.update_folder("f1", FolderFields(name="Other"))

        assert result.success is False
        assert result.error_kind == "backend"
        assert signed_in.state is before

    @pytest.mark.asyncio
    async def test_delete_removes_questions_first(self, signed_in, memory_backend):
        memory_backend.calls.clear()

        result = await signed_in.delete_folder("f1")

        assert result.success is True
        assert memory_backend.calls == ["delete_questions_by_folder", "delete_folder"]
        assert signed_in.state.folders == ()
        assert signed_in.state.questions == ()

    @pytest.mark.asyncio
    async def test_delete_folder_failure_leaves_state(self, signed_in, memory_backend):
        memory_backend.fail_on.add("delete_folder")

        result = await signed_in.delete_folder("f1")

        assert result.success is False
        assert signed_in.folder("f1") is not None
        assert len(signed_in.state.questions) == 1

    @pytest.mark.asyncio
    async def test_response_after_sign_out_discarded(self, signed_in, memory_backend):
        memory_backend.gates["create_folder"] = asyncio.Event()

        task = asyncio.create_task(signed_in.create_folder(FolderFields(name="Late")))
        await asyncio.sleep(0)
        signed_in.on_session_end()
        memory_backend.gates["create_folder"].set()
        result = await task

        assert result.success is False
        assert signed_in.state.folders == ()


class TestQuestionOperations:
    @pytest.mark.asyncio
    async def test_create(self, signed_in):
        result = await signed_in.create_question(mc_fields("f1", options=("Rio", "Brasilia", "", "", "")))

        assert result.success is True
        assert result.record.options == ("Rio", "Brasilia")
        assert result.record.correct_answer == "B"
        assert len(signed_in.questions_in("f1")) == 2

    @pytest.mark.asyncio
    async def test_single_option_rejected_before_backend(self, signed_in, memory_backend):
        memory_backend.calls.clear()

        result = await signed_in.create_question(mc_fields("f1", options=("Only",), answer="A"))

        assert result.success is False
        assert result.error_kind == "validation"
        assert memory_backend.calls == []

    @pytest.mark.asyncio
    async def test_unknown_folder_rejected(self, signed_in, memory_backend):
        memory_backend.calls.clear()

        result = await signed_in.create_question(mc_fields("nope"))

        assert result.success is False
        assert memory_backend.calls == []

    @pytest.mark.asyncio
    async def test_update_switches_type(self, signed_in):
        fields = QuestionFields(
            folder_id="f1", title="A capital e Brasilia", type=QuestionType.BOOLEAN, correct_boolean=True
        )

        result = await signed_in.update_question("q1", fields)

        assert result.success is True
        question = signed_in.question("q1")
        assert question.type is QuestionType.BOOLEAN
        assert question.options == ()
        assert question.correct_boolean is True

    @pytest.mark.asyncio
    async def test_delete(self, signed_in):
        result = await signed_in.delete_question("q1")

        assert result.success is True
        assert signed_in.state.questions == ()

    @pytest.mark.asyncio
    async def test_delete_unknown(self, signed_in):
        result = await signed_in.delete_question("nope")

        assert result.success is False


class TestDispatchAndHelpers:
    def test_reentrant_dispatch_is_queued(self, controller, folder_factory):
        order = []
        folder = folder_factory(folder_id="f9")

        def listener(state):
            order.append(len(state.folders))
            if len(order) == 1:
                controller.dispatch(ResetAll())

        controller.subscribe(listener)
        controller.dispatch(AddFolder(folder))

        assert order == [1, 0]

    def test_unsubscribe(self, controller, folder_factory):
        seen = []
        unsubscribe = controller.subscribe(seen.append)
        unsubscribe()

        controller.dispatch(AddFolder(folder_factory()))

        assert seen == []

    @pytest.mark.asyncio
    async def test_counts_and_search(self, signed_in):
        await signed_in.create_folder(FolderFields(name="Portugues"))

        counts = signed_in.question_counts()

        assert counts["f1"] == 1
        assert sorted(counts.values()) == [0, 1]
        assert [f.name for f in signed_in.search_folders("PORT")] == ["Portugues"]
        assert signed_in.type_counts("f1")[QuestionType.MULTIPLE_CHOICE] == 1


class TestIdentityWiring:
    @pytest.mark.asyncio
    async def test_sign_in_and_out_drive_the_store(self, memory_backend, tmp_path):
        identity = LocalIdentityProvider(tmp_path / "users.json", tmp_path / "session.json")
        controller = StoreController(memory_backend, identity)
        controller.attach()

        user = await identity.sign_in("maria")
        memory_backend.seed_folder(folder_record("f1", user_id=user.id))
        await controller.on_session_start(user.id)
        assert len(controller.state.folders) == 1

        await identity.sign_out()
        assert controller.state.folders == ()
        assert controller.user_id is None


class TestConcurrentEdits:
    @pytest.mark.asyncio
    async def test_last_response_wins(self, signed_in, monkeypatch):
        releases = []
        original_update = signed_in.backend.update_folder

        async def gated_update(folder_id, fields):
            release = asyncio.Event()
            releases.append(release)
            await release.wait()
            return await original_update(folder_id, fields)

        monkeypatch.setattr(signed_in.backend, "update_folder", gated_update)

        first = asyncio.create_task(signed_in.update_folder("f1", FolderFields(name="Primeiro")))
        second = asyncio.create_task(signed_in.update_folder("f1", FolderFields(name="Segundo")))
        await asyncio.sleep(0)
        assert len(releases) == 2

        releases[1].set()
        assert (await second).success
        releases[0].set()
        assert (await first).success

        assert signed_in.folder("f1").name == "Primeiro"
