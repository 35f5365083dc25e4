"""
Entry point for the resolution engine.
Runs simulated PvE or PvP sessions driven by NPC policies.
"""

import argparse
import asyncio
import logging

from deck_engine.abilities import unlocked_abilities
from deck_engine.cards import pretty_card
from deck_engine.config import EngineConfig
from deck_engine.engine import ResolutionEngine
from deck_engine.npc import NPCPolicy
from deck_engine.participant import ParticipantContext
from deck_engine.runner import SessionRunner


def make_participant(name: str, level: int, skill_suit: str, skill: int) -> ParticipantContext:
    participant = ParticipantContext(name, level=level, skill_levels={skill_suit: skill})
    participant.actor = NPCPolicy(abilities=unlocked_abilities(participant))
    return participant


def print_outcome(outcome):
    print(f"📜 Outcome #{outcome.sequence} [{outcome.action_kind}] status={outcome.status} seed={outcome.seed}")
    for result in outcome.results:
        if result.forfeited:
            print(f"  🏳️  {result.participant_id}: forfeited")
            continue
        hand = ' '.join(pretty_card(c) for c in result.hand)
        crit = ' 💥 CRIT' if result.critical_hit else ''
        print(f"  🃏 {result.participant_id}: {hand}  {result.description} "
              f"x{result.multiplier} -> {result.final_value}{crit}")
        if result.success is not None:
            mark = "✅ success" if result.success else "❌ failure"
            print(f"     {mark} (threshold eased by {result.threshold_reduction})")
    if outcome.winner:
        print(f"  🏆 Winner: {outcome.winner}")
    if outcome.abilities_invoked:
        used = ', '.join(f"{a['participant_id']}:{a['ability']}" for a in outcome.abilities_invoked)
        print(f"  ✨ Abilities: {used}")


async def main(args):
    config = EngineConfig.from_env()
    database = None
    db_path = args.db or config.db_path
    if db_path:
        try:
            from deck_engine.database import init_database
            database = init_database(db_path)
            print("✅ Database initialized successfully")
        except Exception as e:
            print(f"⚠️  Database initialization warning: {e}")
            print("💡 Continuing without the outcome archive")

    engine = ResolutionEngine(config, database=database)
    healthcheck = None
    if args.healthcheck:
        from deck_engine.healthcheck import start_healthcheck_in_background
        healthcheck = await start_healthcheck_in_background(engine, port=config.healthcheck_port)

    runner = SessionRunner(engine)
    for i in range(args.sessions):
        participants = [make_participant("hero", args.level, 's', args.skill)]
        if args.pvp:
            participants.append(make_participant("rival", args.level, 'c', args.skill))
        seed = args.seed + i if args.seed is not None else None
        session_id = engine.open_session(args.kind, participants, seed=seed, base_value=args.base,
                                          threshold=args.threshold, difficulty=args.difficulty)
        outcome = await runner.run(session_id)
        print_outcome(outcome)
    await engine.events.drain()

    if healthcheck:
        await healthcheck.stop()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run simulated deck resolution sessions")
    parser.add_argument("--kind", default="combat", help="Action kind (combat, crime, craft, duel)")
    parser.add_argument("--sessions", default=1, type=int, help="Number of sessions to run")
    parser.add_argument("--pvp", action="store_true", help="Run two-participant contests")
    parser.add_argument("--level", default=1, type=int, help="Participant level")
    parser.add_argument("--skill", default=0, type=int, help="Skill level for the participant's suit")
    parser.add_argument("--base", default=10.0, type=float, help="Base value scaled by the hand multiplier")
    parser.add_argument("--threshold", default=None, type=float, help="Value needed for success")
    parser.add_argument("--difficulty", default=3, type=int, help="Action difficulty, 1-5")
    parser.add_argument("--seed", default=None, type=int, help="Fixed seed for reproducible runs")
    parser.add_argument("--db", default=None, help="SQLite path for the outcome archive")
    parser.add_argument("--healthcheck", action="store_true", help="Serve /health while running")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.debug:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)

    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        print("\n👋 Shutting down...")
