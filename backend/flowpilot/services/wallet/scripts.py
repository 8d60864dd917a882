"""Cadence scripts and transactions for the AgentNFT contract.

The Cadence text is payload data: it is sent to the chain as-is with the
contract address placeholders resolved.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from .models import (
    ChainPayload,
    cadence_address,
    cadence_string,
    cadence_ufix64,
    cadence_uint64,
)

if TYPE_CHECKING:
    from flowpilot.ledger.models import AgentStrategy

CONTRACT_PLACEHOLDER = "0xAgentNFT"

GET_USER_BALANCE_SCRIPT = """
  import AgentNFT from 0xAgentNFT
  access(all) fun main(address: Address): UFix64 {
      let account = getAccount(address)
      var totalCost: UFix64 = 0.0
      if let collectionRef = account.capabilities.borrow<&AgentNFT.Collection>(/public/AgentNFTCollection) {
          let agentIDs = collectionRef.getIDs()
          for agentID in agentIDs {
              let nftRef = collectionRef.borrowAgent(id: agentID)
              if nftRef.strategy.strategyType == "HighestAPY" {
                  totalCost = totalCost + 200.0
              } else if nftRef.strategy.strategyType == "RiskAdjustedYield" {
                  totalCost = totalCost + 200.0
              } else if nftRef.strategy.strategyType == "AutoCompoundOnly15P" {
                  totalCost = totalCost + 8.0
              } else if nftRef.strategy.strategyType == "AutoCompoundOnly5P-Farm1" {
                  totalCost = totalCost + 100.0
              } else if nftRef.strategy.strategyType == "AutoCompoundOnly5P-Farm2" {
                  totalCost = totalCost + 150.0
              } else {
                  totalCost = totalCost + 50.0
              }
          }
      }
      let initialBalance: UFix64 = 100.0
      if totalCost >= initialBalance {
          return 0.0
      } else {
          return initialBalance - totalCost
      }
  }
"""

GET_AGENT_IDS_SCRIPT = """
  import AgentNFT from 0xAgentNFT
  access(all) fun main(address: Address): [UInt64] {
      let account = getAccount(address)
      if let collectionRef = account.capabilities.borrow<&AgentNFT.Collection>(/public/AgentNFTCollection) {
          return collectionRef.getIDs()
      }
      return []
  }
"""

GET_AGENT_DETAILS_SCRIPT = """
  import AgentNFT from 0xAgentNFT
  access(all) fun main(address: Address, agentID: UInt64): {String: String}? {
      let account = getAccount(address)
      if let collectionRef = account.capabilities.borrow<&AgentNFT.Collection>(/public/AgentNFTCollection) {
          let ids = collectionRef.getIDs()
          var found: Bool = false
          for id in ids { if id == agentID { found = true } }
          if !found { return nil }
          let nftRef = collectionRef.borrowAgent(id: agentID)
          return {
              "strategyType": nftRef.strategy.strategyType,
              "riskTolerance": nftRef.strategy.riskTolerance,
              "allocationPercent": nftRef.strategy.allocationPercent.toString(),
              "timeLockDays": nftRef.strategy.timeLockDays.toString()
          }
      }
      return nil
  }
"""

MINT_AGENT_TRANSACTION = """
  import AgentNFT from 0xAgentNFT

  transaction(strategyType: String, riskTolerance: String, allocationPercent: UFix64, timeLockDays: UInt64, paymentAmount: UFix64) {
      prepare(signer: auth(Storage, Capabilities) &Account) {
          if signer.storage.borrow<&AgentNFT.Collection>(from: /storage/AgentNFTCollection) == nil {
              signer.storage.save(<-AgentNFT.createEmptyCollection(), to: /storage/AgentNFTCollection)
              let _ = signer.capabilities.unpublish(/public/AgentNFTCollection)
              signer.capabilities.publish(
                  signer.capabilities.storage.issue<&AgentNFT.Collection>(/storage/AgentNFTCollection),
                  at: /public/AgentNFTCollection
              )
          }

          let collection = signer.storage.borrow<&AgentNFT.Collection>(from: /storage/AgentNFTCollection)
              ?? panic("Could not borrow Collection")

          let strategy = AgentNFT.Strategy(
              strategyType: strategyType,
              riskTolerance: riskTolerance,
              allocationPercent: allocationPercent,
              timeLockDays: timeLockDays
          )

          let newNFT <- AgentNFT.mintNFT(strategy: strategy)
          let nftID = newNFT.id

          collection.deposit(token: <-newNFT)

          log("New Agent NFT minted with ID: ".concat(nftID.toString()).concat(" and strategy: ").concat(strategyType))
      }
  }
"""

UPDATE_STRATEGY_TRANSACTION = """
    import AgentNFT from 0xAgentNFT

    transaction(agentID: UInt64, newStrategyType: String, newRisk: String, newAllocationPercent: UFix64, newTimeLockDays: UInt64) {

        prepare(signer: auth(Storage) &Account) {
            let collectionRef = signer.storage.borrow<&AgentNFT.Collection>(from: /storage/AgentNFTCollection)
                ?? panic("Could not borrow Agent Collection")

            let agentRef = collectionRef.borrowAgent(id: agentID)

            let newStrategy = AgentNFT.Strategy(
                strategyType: newStrategyType,
                riskTolerance: newRisk,
                allocationPercent: newAllocationPercent,
                timeLockDays: newTimeLockDays
            )

            agentRef.updateStrategy(newStrategy: newStrategy)

            log("Strategy updated for Agent #".concat(agentID.toString()))
        }
    }
"""


def _resolve(cadence: str, contract_address: str) -> str:
    return cadence.replace(CONTRACT_PLACEHOLDER, contract_address)


def build_mint_payload(
    strategy: AgentStrategy,
    payment: Decimal,
    contract_address: str,
) -> ChainPayload:
    return ChainPayload(
        kind="mint",
        cadence=_resolve(MINT_AGENT_TRANSACTION, contract_address),
        arguments=[
            cadence_string(strategy.strategy_type),
            cadence_string(strategy.risk_tolerance),
            cadence_ufix64(strategy.allocation_percent),
            cadence_uint64(strategy.time_lock_days),
            cadence_ufix64(payment),
        ],
    )


def build_update_strategy_payload(
    agent_id: int,
    strategy: AgentStrategy,
    contract_address: str,
) -> ChainPayload:
    return ChainPayload(
        kind="update_strategy",
        cadence=_resolve(UPDATE_STRATEGY_TRANSACTION, contract_address),
        arguments=[
            cadence_uint64(agent_id),
            cadence_string(strategy.strategy_type),
            cadence_string(strategy.risk_tolerance),
            cadence_ufix64(strategy.allocation_percent),
            cadence_uint64(strategy.time_lock_days),
        ],
    )


def build_balance_query(address: str, contract_address: str) -> ChainPayload:
    return ChainPayload(
        kind="balance",
        cadence=_resolve(GET_USER_BALANCE_SCRIPT, contract_address),
        arguments=[cadence_address(address)],
    )


def build_agent_ids_query(address: str, contract_address: str) -> ChainPayload:
    return ChainPayload(
        kind="agent_ids",
        cadence=_resolve(GET_AGENT_IDS_SCRIPT, contract_address),
        arguments=[cadence_address(address)],
    )


def build_agent_details_query(
    address: str,
    agent_id: int,
    contract_address: str,
) -> ChainPayload:
    return ChainPayload(
        kind="agent_details",
        cadence=_resolve(GET_AGENT_DETAILS_SCRIPT, contract_address),
        arguments=[cadence_address(address), cadence_uint64(agent_id)],
    )
