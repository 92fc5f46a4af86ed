"""Shared pytest fixtures for all tests."""
import pytest

STRUCTURE_SQL = """\
SET statement_timeout = 0;
SET client_encoding = 'UTF8';

--
-- Name: form_status; Type: TYPE; Schema: public; Owner: -
--

CREATE TYPE public.form_status AS ENUM (
    'draft',
    'published'
);


CREATE TYPE public.user_role AS ENUM (
    'admin',
    'member'
);


CREATE TYPE public.unused_kind AS ENUM (
    'a'
);


CREATE FUNCTION public.touch_updated_at() RETURNS trigger
    LANGUAGE plpgsql
    AS $$
BEGIN
CREATE TABLE should_not_be_captured (
    id bigint
);
  RETURN NEW;
END;
$$;


CREATE TABLE public.users (
    id bigint NOT NULL,
    email character varying DEFAULT ''::character varying NOT NULL,
    role public.user_role DEFAULT 'member'::public.user_role NOT NULL,
    created_at timestamp(6) without time zone NOT NULL
);


CREATE TABLE public.submissions_forms (
    id bigint NOT NULL,
    user_id bigint NOT NULL,
    title character varying,
    status public.form_status DEFAULT 'draft'::public.form_status NOT NULL
);


CREATE TABLE public.submissions_answers (
    id bigint NOT NULL,
    submissions_form_id bigint NOT NULL,
    body text
);


CREATE TABLE public.submissionsarchive_entries (
    id bigint NOT NULL
);


CREATE TABLE public.comments (
    id bigint NOT NULL,
    submissions_answer_id bigint,
    body text
);


CREATE TABLE public.audit_logs (
    uuid uuid NOT NULL,
    submissions_form_id bigint
);


CREATE TABLE public.settings (
    id bigint NOT NULL,
    value jsonb
);


ALTER TABLE ONLY public.users ALTER COLUMN id SET DEFAULT nextval('public.users_id_seq'::regclass);

ALTER TABLE IF EXISTS ONLY public.submissions_forms DROP CONSTRAINT IF EXISTS fk_rails_aaa111;
ALTER TABLE IF EXISTS ONLY public.submissions_answers DROP CONSTRAINT IF EXISTS fk_rails_bbb222;
ALTER TABLE IF EXISTS ONLY public.comments DROP CONSTRAINT IF EXISTS fk_rails_ccc333;
ALTER TABLE IF EXISTS ONLY public.settings DROP CONSTRAINT IF EXISTS fk_rails_ddd444;

ALTER TABLE ONLY public.users
    ADD CONSTRAINT users_pkey PRIMARY KEY (id);

ALTER TABLE ONLY public.submissions_forms
    ADD CONSTRAINT fk_rails_aaa111 FOREIGN KEY (user_id) REFERENCES public.users(id);

ALTER TABLE ONLY public.submissions_answers
    ADD CONSTRAINT fk_rails_bbb222 FOREIGN KEY (submissions_form_id) REFERENCES public.submissions_forms(id);

ALTER TABLE ONLY public.comments
    ADD CONSTRAINT fk_rails_ccc333 FOREIGN KEY (submissions_answer_id) REFERENCES public.submissions_answers(id);

ALTER TABLE ONLY public.settings
    ADD CONSTRAINT fk_rails_ddd444 FOREIGN KEY (id) REFERENCES public.users(id);

ALTER TABLE ONLY public.users
    ADD CONSTRAINT fk_rails_eee555 FOREIGN KEY (id) REFERENCES public.accounts(id);
"""


@pytest.fixture
def structure_sql():
    """Rails-style structure.sql dump."""
    return STRUCTURE_SQL


@pytest.fixture
def structure_file(tmp_path):
    """structure.sql written to a temporary directory."""
    path = tmp_path / "structure.sql"
    path.write_text(STRUCTURE_SQL, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep host configuration out of the tests."""
    for name in ("SCHEMA_SUBSET_CONFIG", "SCHEMA_SUBSET_OUTPUT", "SCHEMA_SUBSET_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
