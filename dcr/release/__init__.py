"""Release pipeline for dev container definitions.

- version, tags, ordering: pure derivations from a release identifier
- stub, descriptor: text rewrites of the published definition files
- definition, orchestrator: per-definition state machine and batch runs
- package, cgmanifest: pack flow and component manifest
"""
