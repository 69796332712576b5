import pytest


@pytest.fixture
def sample_contract():
    return """pragma solidity ^0.8.0;

contract Wallet {
    address public owner;
    uint256 public balance

    function withdraw(uint256 amount) public {
        require(tx.origin == owner);
        payable(msg.sender).transfer(amount);
        total = amount
    }

    function kill() public {
        selfdestruct(payable(owner));
    }
"""
